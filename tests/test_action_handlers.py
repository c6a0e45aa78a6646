"""
Tests for the bulk action handlers.

Covers placeholder rendering, the notify/create-task/change-role/activation
handlers, and best-effort side effects that must not fail an item.
"""

import unittest
from unittest.mock import MagicMock

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.bulk.handlers import (
    ChangeRoleHandler,
    CreateTaskHandler,
    NotifyHandler,
    SetActiveHandler,
    UpdateFieldHandler,
    default_handlers,
    render_template,
)
from src.bulk.schema import ChangeRoleConfig, CreateTaskConfig, NotifyConfig, UpdateFieldConfig, build_bulk_request
from src.errors import PerRecordFailure, ValidationError

ADA = {'id': 'm1', 'first_name': 'Ada', 'last_name': 'Byron', 'email_primary': 'ada@example.com', 'city': 'London'}


class TestRenderTemplate(unittest.TestCase):
    def test_placeholders(self):
        test_cases = [
            {'template': 'Dear {{first_name}} {{last_name}},', 'expected': 'Dear Ada Byron,',
             'description': 'name placeholders'},
            {'template': 'Hi {{ first_name }} from {{city}}', 'expected': 'Hi Ada from London',
             'description': 'inner whitespace and other fields'},
            {'template': 'Hi {{first_name}', 'expected': 'Hi {{first_name}',
             'description': 'unterminated placeholder left literal'},
            {'template': 'Total: {{}} {{ 1st }}', 'expected': 'Total: {{}} {{ 1st }}',
             'description': 'malformed names left literal'},
            {'template': 'Plot {{plot_number}}', 'expected': 'Plot ',
             'description': 'missing field renders empty'},
            {'template': 'No placeholders', 'expected': 'No placeholders',
             'description': 'plain text'},
        ]
        for case in test_cases:
            with self.subTest(description=case['description']):
                self.assertEqual(render_template(case['template'], ADA), case['expected'])

    def test_first_name_fallback(self):
        self.assertEqual(render_template('Dear {{first_name}} {{last_name}}', {'id': 'x'}), 'Dear Member ')


class TestNotifyHandler(unittest.TestCase):
    def setUp(self):
        self.delivery = MagicMock()
        self.activity_log = MagicMock()
        self.handler = NotifyHandler(self.delivery, self.activity_log)
        self.config = NotifyConfig(subject='News for {{first_name}}', body='Hello {{first_name}} {{last_name}}')

    def test_sends_rendered_message(self):
        self.handler.apply(ADA, self.config)
        self.delivery.send.assert_called_once_with('ada@example.com', 'News for Ada', 'Hello Ada Byron')
        self.activity_log.record.assert_called_once_with(
            'm1', 'contact_log', 'Bulk Email Sent: News for {{first_name}}', record_name='Ada Byron'
        )

    def test_missing_email_fails_item(self):
        record = {**ADA, 'email_primary': ''}
        with self.assertRaises(PerRecordFailure) as ctx:
            self.handler.apply(record, self.config)
        self.assertIn('Ada Byron', str(ctx.exception))
        self.delivery.send.assert_not_called()

    def test_delivery_false_fails_item(self):
        self.delivery.send.return_value = False
        with self.assertRaises(PerRecordFailure):
            self.handler.apply(ADA, self.config)
        self.activity_log.record.assert_not_called()

    def test_delivery_none_counts_as_sent(self):
        self.delivery.send.return_value = None
        self.assertIsNone(self.handler.apply(ADA, self.config))
        self.activity_log.record.assert_called_once()

    def test_delivery_error_propagates(self):
        self.delivery.send.side_effect = RuntimeError('quota exceeded')
        with self.assertRaises(RuntimeError):
            self.handler.apply(ADA, self.config)

    def test_activity_log_failure_is_best_effort(self):
        self.activity_log.record.side_effect = RuntimeError('log table missing')
        self.handler.apply(ADA, self.config)
        self.delivery.send.assert_called_once()


class TestCreateTaskHandler(unittest.TestCase):
    def setUp(self):
        self.task_store = MagicMock()
        self.task_store.create.return_value = 'task-1'
        self.records = MagicMock()
        self.handler = CreateTaskHandler(self.task_store, self.records)

    def test_task_payload_links_record(self):
        config = CreateTaskConfig(title='Annual Check-in', description='Call about renewal',
                                  dueDate='2024-08-01', priority='High', assigneeId='e7')
        self.assertEqual(self.handler.apply(ADA, config), 'task-1')

        payload = self.task_store.create.call_args.args[0]
        self.assertEqual(payload['title'], 'Annual Check-in - Ada Byron')
        self.assertEqual(payload['related_record_id'], 'm1')
        self.assertTrue(payload['description'].startswith('Call about renewal'))
        self.assertIn('m1', payload['description'])
        self.assertEqual(payload['status'], 'To Do')
        self.assertEqual(payload['priority'], 'High')
        self.assertEqual(payload['due_date'], '2024-08-01')
        self.assertEqual(payload['assignee_id'], 'e7')
        self.records.update.assert_not_called()

    def test_default_priority(self):
        config = CreateTaskConfig(title='Check-in')
        self.handler.apply(ADA, config)
        self.assertEqual(self.task_store.create.call_args.args[0]['priority'], 'Medium')

    def test_followup_update(self):
        config = CreateTaskConfig(title='Check-in', due_date='2024-08-01', update_followup=True)
        self.handler.apply(ADA, config)
        self.records.update.assert_called_once_with('m1', {
            'follow_up_status': 'pending',
            'follow_up_date': '2024-08-01',
            'follow_up_notes': 'Bulk Task: Check-in',
        })

    def test_followup_failure_does_not_fail_item(self):
        self.records.update.side_effect = RuntimeError('record locked')
        config = CreateTaskConfig(title='Check-in', update_followup=True)
        self.assertEqual(self.handler.apply(ADA, config), 'task-1')

    def test_task_store_failure_fails_item(self):
        self.task_store.create.side_effect = RuntimeError('task store down')
        with self.assertRaises(RuntimeError):
            self.handler.apply(ADA, CreateTaskConfig(title='Check-in'))

    def test_followup_needs_record_source(self):
        handler = CreateTaskHandler(self.task_store)
        with self.assertRaises(ValidationError):
            handler.validate(CreateTaskConfig(title='Check-in', update_followup=True))


class TestRecordUpdateHandlers(unittest.TestCase):
    def setUp(self):
        self.records = MagicMock()

    def test_change_role(self):
        handler = ChangeRoleHandler(self.records)
        config = ChangeRoleConfig(employment_type='Volunteer')
        handler.validate(config)
        handler.apply({'id': 'e1'}, config)
        self.records.update.assert_called_once_with('e1', {'employment_type': 'Volunteer'})

    def test_change_role_rejects_unknown_type(self):
        handler = ChangeRoleHandler(self.records)
        with self.assertRaises(ValidationError):
            handler.validate(ChangeRoleConfig(employmentType='Astronaut'))

    def test_activation(self):
        test_cases = [
            {'active': False, 'expected': 'inactive', 'action_type': 'deactivate'},
            {'active': True, 'expected': 'active', 'action_type': 'reactivate'},
        ]
        for case in test_cases:
            with self.subTest(case=case):
                self.records.reset_mock()
                handler = SetActiveHandler(self.records, active=case['active'])
                self.assertEqual(handler.action_type.value, case['action_type'])
                handler.apply({'id': 'e1'})
                self.records.update.assert_called_once_with('e1', {'status': case['expected']})

    def test_default_handlers_skip_missing_collaborators(self):
        handlers = default_handlers(self.records)
        self.assertEqual(sorted(handlers), ['change_role', 'deactivate', 'reactivate', 'update_field'])

        handlers = default_handlers(self.records, delivery=MagicMock(), task_store=MagicMock())
        self.assertEqual(
            sorted(handlers),
            ['change_role', 'create_task', 'deactivate', 'notify', 'reactivate', 'update_field'],
        )


class TestUpdateFieldHandler(unittest.TestCase):
    def setUp(self):
        self.records = MagicMock()
        self.handler = UpdateFieldHandler(self.records)

    def test_writes_all_updates(self):
        config = UpdateFieldConfig(updates={'city': 'Baton Rouge', 'follow_up_status': 'completed', 'donation': 250})
        self.handler.validate(config)
        self.handler.apply({'id': 'm1'}, config)
        self.records.update.assert_called_once_with(
            'm1', {'city': 'Baton Rouge', 'follow_up_status': 'completed', 'donation': 250}
        )

    def test_none_clears_a_field(self):
        config = UpdateFieldConfig(updates={'follow_up_date': None})
        self.handler.validate(config)
        self.handler.apply({'id': 'm1'}, config)
        self.records.update.assert_called_once_with('m1', {'follow_up_date': None})

    def test_rejected_updates(self):
        test_cases = [
            {'updates': {'shoe_size': '9'}, 'description': 'field not in catalog'},
            {'updates': {'follow_up_status': 'someday'}, 'description': 'value outside enum'},
            {'updates': {'donation': 'lots'}, 'description': 'non-numeric number'},
            {'updates': {'last_contact_date': 'last tuesday'}, 'description': 'unparseable date'},
        ]
        for case in test_cases:
            with self.subTest(description=case['description']):
                with self.assertRaises(ValidationError):
                    self.handler.validate(UpdateFieldConfig(updates=case['updates']))

    def test_allowed_fields_narrow_the_catalog(self):
        handler = UpdateFieldHandler(self.records, allowed_fields=['city', 'state'])
        handler.validate(UpdateFieldConfig(updates={'state': 'TX'}))
        with self.assertRaises(ValidationError):
            handler.validate(UpdateFieldConfig(updates={'status': 'inactive'}))

    def test_config_shape(self):
        test_cases = [
            {'config': {'updates': {}}, 'description': 'no fields'},
            {'config': {'updates': {'id': 'other'}}, 'description': 'record id'},
            {'config': {}, 'description': 'missing updates'},
        ]
        for case in test_cases:
            with self.subTest(description=case['description']):
                with self.assertRaises(ValidationError):
                    build_bulk_request(['m1'], 'update_field', case['config'])


if __name__ == '__main__':
    unittest.main()
