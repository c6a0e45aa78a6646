#!/usr/bin/env python3
"""
Constituent Segments - command-line request layer
"""
import argparse
from datetime import date
import json
import logging
import os
import sys

# Add the parent directory to Python path for imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog
from dotenv import load_dotenv

from src.bulk import BulkOperationExecutor, default_handlers, parse_bulk_request
from src.config import Settings
from src.database import (
    SqlActivityLog,
    SqlAuditLog,
    SqlRecordStore,
    SqlTaskStore,
    configure,
    get_db_session,
    get_scoped_session,
    init_db,
)
from src.errors import SegmentsError
from src.segments import SegmentEngine, SegmentStore, parse_criteria

logger = structlog.get_logger()


def read_json(path: str):
    with open(path, 'r') as f:
        return json.load(f)


def print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def parse_today(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {value!r}")


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='Constituent segmentation and bulk actions')
    parser.add_argument('--collection', help='Record collection (default: RECORD_COLLECTION or member)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    imp = subparsers.add_parser('import-records', help='Load records from a JSON list')
    imp.add_argument('file')

    flt = subparsers.add_parser('filter', help='List records matching a segment')
    source = flt.add_mutually_exclusive_group(required=True)
    source.add_argument('--criteria', help='JSON file with {"match", "rules"}')
    source.add_argument('--segment', type=int, help='ID of a saved segment')
    flt.add_argument('--today', type=parse_today, help='Reference date for relative rules (YYYY-MM-DD)')
    flt.add_argument('--ids-only', action='store_true', help='Print matching IDs only')

    save = subparsers.add_parser('save-segment', help='Save criteria as a named segment')
    save.add_argument('--name', required=True)
    save.add_argument('--criteria', required=True, help='JSON file with {"match", "rules"}')
    save.add_argument('--description')

    subparsers.add_parser('list-segments', help='List saved segments')

    delete = subparsers.add_parser('delete-segment', help='Delete a saved segment')
    delete.add_argument('segment_id', type=int)

    bulk = subparsers.add_parser('bulk', help='Run a bulk action request')
    bulk.add_argument('file', help='JSON file with {"recordIds", "actionType", "config"}')

    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    """Route structlog through stdlib logging on stderr, keeping stdout for results"""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger('googleapiclient.discovery').setLevel(logging.WARNING)
    logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_executor(db, settings: Settings, records: SqlRecordStore, needs_delivery: bool,
                   call_teardown=None) -> BulkOperationExecutor:
    delivery = None
    if needs_delivery:
        # Imported lazily so non-email commands never need Google credentials
        from src.delivery import GmailDeliveryClient, get_credentials, get_gmail_service
        credentials = get_credentials(settings.gmail_token_file)
        delivery = GmailDeliveryClient(
            get_gmail_service(credentials),
            sender=settings.gmail_sender,
            credentials=credentials,
            timeout=settings.bulk_call_timeout,
        )

    handlers = default_handlers(
        records,
        delivery=delivery,
        task_store=SqlTaskStore(db),
        activity_log=SqlActivityLog(db),
    )
    return BulkOperationExecutor(
        records,
        handlers,
        call_timeout=settings.bulk_call_timeout,
        audit_log=SqlAuditLog(db),
        call_teardown=call_teardown,
    )


def run_bulk(args, settings: Settings, db) -> dict:
    request = parse_bulk_request(read_json(args.file))
    collection = args.collection or settings.record_collection
    needs_delivery = request.action_type == 'notify'

    if not settings.bulk_call_timeout:
        records = SqlRecordStore(db, collection)
        return build_executor(db, settings, records, needs_delivery).execute(request).to_response()

    # Timed calls run on worker threads, which must not share one Session
    sessions = get_scoped_session()
    try:
        records = SqlRecordStore(sessions, collection)
        executor = build_executor(sessions, settings, records, needs_delivery, call_teardown=sessions.remove)
        return executor.execute(request).to_response()
    finally:
        sessions.remove()


def run(args, settings: Settings, db) -> int:
    records = SqlRecordStore(db, args.collection or settings.record_collection)
    segments = SegmentStore(db)

    if args.command == 'import-records':
        rows = read_json(args.file)
        for row in rows:
            records.create(row)
        logger.info("Imported records", count=len(rows), collection=records.collection)

    elif args.command == 'filter':
        criteria = segments.load(args.segment) if args.segment is not None else parse_criteria(read_json(args.criteria))
        today = args.today or date.today()
        matched = SegmentEngine().filter_records(records.list(), criteria, today)
        logger.info("Segment evaluated", matched=len(matched), today=today.isoformat())
        print_json([r['id'] for r in matched] if args.ids_only else matched)

    elif args.command == 'save-segment':
        criteria = parse_criteria(read_json(args.criteria))
        SegmentEngine().validate_criteria(criteria)
        print_json(segments.save(args.name, criteria, args.description).model_dump())

    elif args.command == 'list-segments':
        print_json([segment.model_dump() for segment in segments.list()])

    elif args.command == 'delete-segment':
        segments.delete(args.segment_id)
        logger.info("Deleted segment", segment_id=args.segment_id)

    elif args.command == 'bulk':
        print_json(run_bulk(args, settings, db))

    return 0


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    load_dotenv()
    settings = Settings.from_env()

    configure_logging(settings.log_level)

    configure(settings.database_url)
    init_db()

    db = get_db_session()
    try:
        return run(args, settings, db)
    except SegmentsError as e:
        logger.error("Request failed", error=str(e), error_type=e.__class__.__name__)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
