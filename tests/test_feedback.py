import unittest
import tempfile
import shutil
from unittest.mock import patch

from pitchside.storage import StorageManager
from pitchside.models import (
    Team, Player, Session, SessionBlock, SessionBlockAttribute, AttendanceStatus, OrderType,
)
from pitchside.blocks import assign_block_to_session
from pitchside.feedback import load_feedback_modal_data, generate_training_events, save_all_feedback


class TestSessionFeedback(unittest.TestCase):
    def setUp(self):
        """A session with one block training first touch and scanning"""
        self.temp_dir = tempfile.mkdtemp()
        self.storage = StorageManager(data_dir=self.temp_dir)
        self.coach = self.storage.create_coach('head@example.com')
        self.club = self.storage.create_club('Riverside FC', self.coach.id)
        self.team = Team(club_id=self.club.id, name='U12 Blues')
        self.storage.save_team(self.team)

        self.sam = Player(club_id=self.club.id, team_id=self.team.id, name='Sam')
        self.alex = Player(club_id=self.club.id, team_id=self.team.id, name='Alex')
        self.storage.save_player(self.sam)
        self.storage.save_player(self.alex)
        self.storage.set_player_idps(self.sam.id, [{'attribute_key': 'first_touch'}, {'attribute_key': 'speed'}])
        self.storage.set_player_idps(self.alex.id, [{'attribute_key': 'scanning'}])

        self.session = Session(club_id=self.club.id, team_id=self.team.id, coach_id=self.coach.id,
                               title='Receiving', session_date='2025-03-01T10:00')
        self.storage.save_session(self.session)

        block = SessionBlock(title='Receiving on the half turn', creator_id=self.coach.id)
        self.storage.save_block(block)
        self.storage.save_block_attributes(block.id, [
            SessionBlockAttribute(block_id=block.id, attribute_key='first_touch', relevance=1.0),
            SessionBlockAttribute(block_id=block.id, attribute_key='scanning', relevance=0.5,
                                  order_type=OrderType.SECOND),
        ])
        self.assignment = assign_block_to_session(self.storage, self.session.id, block.id)

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def test_modal_defaults(self):
        """Players without saved attendance start as present with an empty note"""
        data = load_feedback_modal_data(self.storage, self.session)
        self.assertIsNone(data['feedback_id'])
        self.assertEqual({p['status'] for p in data['players']}, {'present'})
        self.assertEqual({p['note'] for p in data['players']}, {''})

    def test_training_events_for_present_players(self):
        self.storage.mark_attendance(self.session.id, self.sam.id, AttendanceStatus.PRESENT)
        self.storage.mark_attendance(self.session.id, self.alex.id, AttendanceStatus.ABSENT)

        events = generate_training_events(self.storage, self.session)
        self.assertEqual([(e.player_id, e.attribute_key) for e in events], [(self.sam.id, 'first_touch')])
        self.assertEqual(events[0].weight, 1.0)
        self.assertEqual(events[0].created_at, self.session.session_date)

    def test_excluded_players_get_no_events(self):
        self.storage.mark_attendance(self.session.id, self.sam.id, AttendanceStatus.PRESENT)
        self.storage.mark_attendance(self.session.id, self.alex.id, AttendanceStatus.PRESENT)
        self.storage.add_exclusion(self.assignment.id, self.sam.id)

        events = generate_training_events(self.storage, self.session)
        self.assertEqual([(e.player_id, e.attribute_key, e.weight) for e in events],
                         [(self.alex.id, 'scanning', 0.5)])

    def test_regenerating_replaces_events(self):
        self.storage.mark_attendance(self.session.id, self.sam.id, AttendanceStatus.PRESENT)
        generate_training_events(self.storage, self.session)
        generate_training_events(self.storage, self.session)
        self.assertEqual(len(self.storage.get_player_training_events(self.sam.id)), 1)

    def test_save_all_feedback(self):
        result = save_all_feedback(
            self.storage, self.session, self.coach.id, ' Good intensity ',
            [
                {'player_id': self.sam.id, 'status': 'present', 'note': 'Opened body well',
                 'attribute_key': 'first_touch', 'sentiment': 'positive'},
                {'player_id': self.alex.id, 'status': 'absent', 'note': ''},
            ],
            overall_rating=4,
        )
        self.assertEqual(result['feedback'].team_feedback, 'Good intensity')
        self.assertEqual(result['notes_saved'], 1)
        self.assertEqual(result['training_events'], 1)

        data = load_feedback_modal_data(self.storage, self.session)
        statuses = {p['player_id']: p['status'] for p in data['players']}
        self.assertEqual(statuses[self.alex.id], 'absent')
        self.assertEqual(data['overall_rating'], 4)

        # Saving again updates the same feedback record
        again = save_all_feedback(self.storage, self.session, self.coach.id, 'Updated', [])
        self.assertEqual(again['feedback'].id, result['feedback'].id)
        self.assertEqual(again['notes_saved'], 0)

    def test_unknown_player_writes_nothing(self):
        with self.assertRaises(ValueError):
            save_all_feedback(self.storage, self.session, self.coach.id, 'Notes', [
                {'player_id': 'not-in-team', 'status': 'present'},
            ])
        self.assertIsNone(self.storage.get_session_feedback(self.session.id))

    def test_invalid_status_rejected(self):
        with self.assertRaises(ValueError):
            save_all_feedback(self.storage, self.session, self.coach.id, None, [
                {'player_id': self.sam.id, 'status': 'sleeping'},
            ])

    def test_unknown_note_attribute_rejected(self):
        with self.assertRaises(ValueError):
            save_all_feedback(self.storage, self.session, self.coach.id, None, [
                {'player_id': self.sam.id, 'note': 'Good', 'attribute_key': 'juggling_on_a_unicycle'},
            ])
        self.assertIsNone(self.storage.get_session_feedback(self.session.id))

    def test_event_failure_keeps_feedback(self):
        with patch('pitchside.feedback.generate_training_events', side_effect=RuntimeError('disk full')):
            with self.assertLogs('pitchside.feedback', level='ERROR') as logs:
                result = save_all_feedback(self.storage, self.session, self.coach.id, 'Sharp session', [
                    {'player_id': self.sam.id, 'note': 'Good first touch', 'attribute_key': 'first_touch'},
                ])
        self.assertEqual(result['notes_saved'], 1)
        self.assertEqual(result['training_events'], 0)
        self.assertIsNotNone(logs.records[0].exc_info)
        feedback = self.storage.get_session_feedback(self.session.id)
        self.assertEqual(feedback.team_feedback, 'Sharp session')
        self.assertEqual(len(self.storage.get_feedback_notes(feedback.id)), 1)


if __name__ == '__main__':
    unittest.main()
