import unittest
import tempfile
import shutil
from datetime import datetime

from pitchside.storage import StorageManager
from pitchside.models import Team, Player, PlayerIDP, Session, SessionBlock, SessionBlockAttribute, OrderType
from pitchside.blocks import assign_block_to_session
from pitchside.feedback import save_all_feedback
from pitchside import analytics


class AnalyticsTestCase(unittest.TestCase):
    """Two past sessions for a team of two players.

    Session one runs a receiving block (first touch, scanning) with only Sam
    present; session two runs a pressing block with both players present.
    """

    def setUp(self):
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
        self.sam_first_touch = self._idp(self.sam, 'first_touch', 1)
        self._idp(self.sam, 'scanning', 2)
        self._idp(self.alex, 'scanning', 1)

        self.receiving = self._block('Receiving on the half turn', [
            ('first_touch', 1.0, OrderType.FIRST),
            ('scanning', 0.5, OrderType.SECOND),
        ])
        self.pressing = self._block('Pressing triggers', [('pressing', 1.0, OrderType.FIRST)])

        self.first = self._session('Receiving', '2025-01-06T18:00', self.receiving, [
            {'player_id': self.sam.id, 'status': 'present', 'note': 'Great first touch',
             'attribute_key': 'first_touch', 'sentiment': 'positive'},
            {'player_id': self.alex.id, 'status': 'absent'},
        ])
        self.second = self._session('Pressing', '2025-01-13T18:00', self.pressing, [
            {'player_id': self.sam.id, 'status': 'present', 'note': 'Forgot to scan',
             'attribute_key': 'scanning', 'sentiment': 'negative'},
            {'player_id': self.alex.id, 'status': 'present'},
        ])
        self._stamp_notes(self.first, '2025-01-06T19:00:00')
        self._stamp_notes(self.second, '2025-01-13T19:00:00')

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _idp(self, player, attribute_key, priority):
        idp = PlayerIDP(player_id=player.id, attribute_key=attribute_key, priority=priority,
                        started_at='2020-01-01T00:00:00')
        self.storage.save_idp(idp)
        return idp

    def _block(self, title, attributes):
        block = SessionBlock(title=title, creator_id=self.coach.id, club_id=self.club.id)
        self.storage.save_block(block)
        self.storage.save_block_attributes(block.id, [
            SessionBlockAttribute(block_id=block.id, attribute_key=key, relevance=relevance, order_type=order)
            for key, relevance, order in attributes
        ])
        return block

    def _stamp_notes(self, session, created_at):
        feedback = self.storage.get_session_feedback(session.id)
        notes = self.storage.get_feedback_notes(feedback.id)
        for note in notes:
            note.created_at = created_at
        self.storage.replace_feedback_notes(feedback.id, notes)

    def _session(self, title, session_date, block, player_feedback):
        session = Session(club_id=self.club.id, team_id=self.team.id, coach_id=self.coach.id,
                          title=title, session_date=session_date)
        self.storage.save_session(session)
        assign_block_to_session(self.storage, session.id, block.id)
        save_all_feedback(self.storage, session, self.coach.id, 'Team notes', player_feedback)
        return session


class TestTeamAnalytics(AnalyticsTestCase):
    def test_summary(self):
        summary = analytics.get_team_training_summary(self.storage, self.team.id)
        self.assertEqual(summary['sessions_completed'], 2)
        self.assertEqual(summary['total_training_minutes'], 120)
        self.assertEqual(summary['total_players'], 2)
        self.assertEqual(summary['avg_attendance_percentage'], 75.0)
        self.assertEqual(summary['active_idps'], 3)
        self.assertEqual(summary['unique_idp_attributes'], 2)
        self.assertEqual(summary['idp_coverage_rate'], 66.7)

    def test_summary_date_range(self):
        summary = analytics.get_team_training_summary(
            self.storage, self.team.id, start_date=datetime(2025, 1, 10), end_date=datetime(2025, 1, 31),
        )
        self.assertEqual(summary['sessions_completed'], 1)
        self.assertEqual(summary['idp_coverage_rate'], 0.0)

    def test_future_sessions_ignored(self):
        summary = analytics.get_team_training_summary(self.storage, self.team.id, now=datetime(2025, 1, 10))
        self.assertEqual(summary['sessions_completed'], 1)

    def test_idp_gaps(self):
        gaps = analytics.get_team_idp_gaps(self.storage, self.team.id)
        self.assertEqual([g['attribute_key'] for g in gaps], ['scanning', 'first_touch'])

        scanning = gaps[0]
        self.assertEqual(scanning['players_with_idp'], 2)
        self.assertEqual(scanning['training_sessions'], 1)
        self.assertEqual(scanning['sessions_since_trained'], 1)
        self.assertEqual(scanning['last_trained_date'], self.first.session_date)
        self.assertEqual(scanning['priority_score'], 60)
        self.assertEqual(scanning['gap_status'], 'due')
        self.assertEqual(gaps[1]['priority_score'], 50)

    def test_attribute_breakdown(self):
        breakdown = {b['category']: b for b in analytics.get_team_attribute_breakdown(self.storage, self.team.id)}
        self.assertEqual(len(breakdown), 4)
        self.assertEqual(breakdown['attributes_in_possession']['total_opportunities'], 2)
        self.assertEqual(breakdown['attributes_in_possession']['attribute_count'], 2)
        self.assertEqual(breakdown['attributes_out_of_possession']['total_opportunities'], 2)
        self.assertEqual(breakdown['attributes_physical']['total_opportunities'], 0)

    def test_player_matrix(self):
        rows = {r['player_name']: r for r in analytics.get_team_player_matrix(self.storage, self.team.id)}
        sam = rows['Sam']
        self.assertEqual(sam['attendance_percentage'], 100.0)
        self.assertEqual(sam['most_trained_idp']['attribute_key'], 'first_touch')
        self.assertEqual(sam['least_trained_idp']['attribute_key'], 'scanning')
        self.assertIsNone(sam['mid_trained_idp'])

        alex = rows['Alex']
        self.assertEqual(alex['sessions_attended'], 1)
        self.assertEqual(alex['attendance_percentage'], 50.0)
        self.assertIsNone(alex['least_trained_idp'])

    def test_training_trend(self):
        trend = analytics.get_team_training_trend(self.storage, self.team.id, weeks=4, now=datetime(2025, 1, 20, 12))
        self.assertEqual([p['week_start'] for p in trend], ['2024-12-30', '2025-01-06', '2025-01-13', '2025-01-20'])
        self.assertEqual([p['sessions'] for p in trend], [0, 1, 1, 0])
        self.assertEqual(trend[1]['training_events'], 2)
        self.assertEqual(trend[2]['attendance_percentage'], 100.0)

    def test_block_usage(self):
        usage = analytics.get_team_session_block_usage(self.storage, self.team.id)
        self.assertEqual({u['title'] for u in usage}, {'Receiving on the half turn', 'Pressing triggers'})
        self.assertTrue(all(u['usage_count'] == 1 for u in usage))

    def test_block_recommendations(self):
        recommendations = analytics.get_team_block_recommendations(self.storage, self.team.id)
        self.assertEqual([r['block_id'] for r in recommendations], [self.receiving.id])
        top = recommendations[0]
        self.assertEqual(top['priority_score'], 100)
        self.assertEqual(top['block_score'], 0.8)
        self.assertEqual({p['name'] for p in top['impacted_players']}, {'Sam', 'Alex'})

    def test_other_club_blocks_not_recommended(self):
        block = SessionBlock(title='Another club', creator_id='x', club_id='other-club')
        self.storage.save_block(block)
        self.storage.save_block_attributes(block.id, [
            SessionBlockAttribute(block_id=block.id, attribute_key='scanning'),
        ])
        recommendations = analytics.get_team_block_recommendations(self.storage, self.team.id)
        self.assertNotIn(block.id, [r['block_id'] for r in recommendations])


class TestPlayerAnalytics(AnalyticsTestCase):
    def test_idp_progress(self):
        progress = {p['attribute_key']: p for p in analytics.get_player_idp_progress(self.storage, self.sam.id)}
        self.assertEqual(progress['first_touch']['training_sessions'], 1)
        self.assertEqual(progress['first_touch']['total_weight'], 1.0)
        self.assertEqual(progress['first_touch']['positive_mentions'], 1)
        self.assertEqual(progress['first_touch']['trend'], 'improving')
        self.assertEqual(progress['scanning']['total_weight'], 0.5)
        self.assertEqual(progress['scanning']['trend'], 'declining')

    def test_idp_started_after_session_has_no_progress(self):
        self.storage.end_idp(self.sam_first_touch.id)
        late = PlayerIDP(player_id=self.sam.id, attribute_key='first_touch', started_at='2025-02-01T00:00:00')
        self.storage.save_idp(late)

        progress = analytics.get_player_idp_progress(self.storage, self.sam.id, active_only=True)
        first_touch = next(p for p in progress if p['attribute_key'] == 'first_touch')
        self.assertEqual(first_touch['training_sessions'], 0)
        self.assertIsNone(first_touch['last_trained_at'])

    def test_attendance(self):
        attendance = analytics.get_player_attendance_summary(self.storage, self.alex.id)
        self.assertEqual(attendance, {
            'total_sessions': 2, 'attended': 1, 'absent': 1, 'attendance_percentage': 50.0,
        })
        ranged = analytics.get_player_attendance_summary(self.storage, self.alex.id, start_date=datetime(2025, 1, 10))
        self.assertEqual(ranged['attendance_percentage'], 100.0)

    def test_training_events(self):
        events = analytics.get_player_training_events(self.storage, self.sam.id)
        self.assertEqual({e['attribute_key'] for e in events}, {'first_touch', 'scanning'})
        only = analytics.get_player_training_events(self.storage, self.sam.id, 'scanning')
        self.assertEqual([e['session_title'] for e in only], ['Receiving'])

    def test_idp_training_sessions(self):
        sessions = analytics.get_idp_training_sessions(self.storage, self.sam_first_touch.id)
        self.assertEqual([s['session_id'] for s in sessions], [self.first.id])
        self.assertEqual(analytics.get_idp_training_sessions(self.storage, 'missing'), [])

    def test_sessions(self):
        sessions = analytics.get_player_sessions(self.storage, self.sam.id)
        self.assertEqual([s['session_id'] for s in sessions], [self.second.id, self.first.id])
        self.assertEqual(sessions[1]['attributes_trained'], ['first_touch', 'scanning'])
        self.assertEqual(sessions[1]['feedback_note'], 'Great first touch')
        self.assertEqual(sessions[1]['blocks'][0]['title'], 'Receiving on the half turn')
        self.assertEqual(analytics.get_player_sessions_count(self.storage, self.sam.id), 2)
        self.assertEqual(len(analytics.get_player_sessions(self.storage, self.sam.id, limit=1, offset=1)), 1)

    def test_idp_priorities(self):
        priorities = analytics.get_player_idp_priorities(self.storage, self.alex.id)
        self.assertEqual(len(priorities), 1)
        self.assertEqual(priorities[0]['idp_score'], 100)
        self.assertEqual(priorities[0]['gap_status'], 'urgent')

    def test_feedback_insights(self):
        notes = analytics.get_player_feedback_insights(self.storage, self.sam.id)
        self.assertEqual([n['note'] for n in notes], ['Forgot to scan', 'Great first touch'])
        self.assertEqual(analytics.get_player_feedback_count(self.storage, self.sam.id, sentiment='positive'), 1)
        self.assertEqual(
            analytics.get_player_feedback_count(self.storage, self.sam.id, attribute_key='scanning'), 1,
        )
        self.assertEqual(len(analytics.get_recent_feedback_notes(self.storage, self.sam.id, limit=1)), 1)

        with self.assertRaises(ValueError):
            analytics.get_player_feedback_insights(self.storage, self.sam.id, sentiment='ecstatic')

    def test_notes_ordered_by_when_they_were_written(self):
        # Feedback for the older session was written last
        self._stamp_notes(self.first, '2025-01-20T09:00:00')
        notes = analytics.get_player_feedback_insights(self.storage, self.sam.id)
        self.assertEqual([n['note'] for n in notes], ['Great first touch', 'Forgot to scan'])
        recent = analytics.get_recent_feedback_notes(self.storage, self.sam.id, limit=1)
        self.assertEqual(recent[0]['session_id'], self.first.id)

    def test_feedback_survives_team_move(self):
        u13 = Team(club_id=self.club.id, name='U13 Reds')
        self.storage.save_team(u13)
        self.sam.team_id = u13.id
        self.storage.save_player(self.sam)

        notes = analytics.get_player_feedback_insights(self.storage, self.sam.id)
        self.assertEqual([n['session_title'] for n in notes], ['Pressing', 'Receiving'])
        self.assertEqual(analytics.get_player_feedback_count(self.storage, self.sam.id), 2)

    def test_player_block_recommendations(self):
        recommendations = analytics.get_player_block_recommendations(self.storage, self.alex.id)
        self.assertEqual([r['block_id'] for r in recommendations], [self.receiving.id])
        self.assertEqual(recommendations[0]['impacted_players'], [{'id': self.alex.id, 'name': 'Alex'}])

    def test_training_balance(self):
        balance = {b['category']: b for b in analytics.get_player_training_balance(self.storage, self.sam.id)}
        self.assertEqual(balance['attributes_in_possession']['events'], 2)
        self.assertEqual(balance['attributes_in_possession']['total_weight'], 1.5)
        self.assertEqual(balance['attributes_in_possession']['percentage'], 100)
        self.assertEqual(balance['attributes_physical']['percentage'], 0)


if __name__ == '__main__':
    unittest.main()
