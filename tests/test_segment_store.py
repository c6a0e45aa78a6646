"""
Tests for saved segment persistence, against an in-memory SQLite database
"""

import unittest

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.database.models import Base, SegmentRule
from src.errors import SegmentNotFoundError, ValidationError
from src.segments.schema import SegmentCriteria, parse_criteria
from src.segments.store import SegmentStore


class TestSegmentStore(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine('sqlite://')
        Base.metadata.create_all(bind=self.engine)
        self.db = sessionmaker(bind=self.engine)()
        self.store = SegmentStore(self.db)
        self.criteria = parse_criteria({
            'match': 'any',
            'rules': [
                {'field': 'state', 'operator': 'equals', 'value': 'LA'},
                {'field': 'last_contact_date', 'operator': 'days_ago_gt', 'value': '180'},
                {'field': 'donation', 'operator': 'gte', 'value': '100'},
            ],
        })

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_round_trip(self):
        saved = self.store.save('Lapsed Louisiana', self.criteria, description='No contact in 6 months')
        self.assertEqual(saved.name, 'Lapsed Louisiana')
        self.assertEqual(saved.description, 'No contact in 6 months')

        # Load through a fresh session so nothing comes from the identity map
        other = SegmentStore(sessionmaker(bind=self.engine)())
        self.assertEqual(other.load(saved.id), self.criteria)

    def test_empty_criteria_round_trip(self):
        criteria = SegmentCriteria()
        saved = self.store.save('Everyone', criteria)
        self.assertEqual(self.store.load(saved.id), criteria)

    def test_empty_name_rejected(self):
        for name in ['', '   ', None]:
            with self.subTest(name=name):
                with self.assertRaises(ValidationError):
                    self.store.save(name, self.criteria)
        self.assertEqual(self.store.list(), [])

    def test_duplicate_names_are_separate_entries(self):
        first = self.store.save('Donors', self.criteria)
        second = self.store.save('Donors', SegmentCriteria(match='all'))
        self.assertNotEqual(first.id, second.id)

        segments = self.store.list()
        self.assertEqual([s.id for s in segments], [first.id, second.id])
        self.assertEqual(self.store.load(second.id).match, 'all')

    def test_get_returns_saved_segment(self):
        saved = self.store.save('Donors', self.criteria)
        self.assertEqual(self.store.get(saved.id), saved)

    def test_load_unknown_id(self):
        with self.assertRaises(SegmentNotFoundError):
            self.store.load(404)

    def test_delete_removes_rules(self):
        saved = self.store.save('Donors', self.criteria)
        self.store.delete(saved.id)
        with self.assertRaises(SegmentNotFoundError):
            self.store.get(saved.id)
        self.assertEqual(self.db.query(SegmentRule).count(), 0)


if __name__ == '__main__':
    unittest.main()
