import unittest
import tempfile
import shutil
import os
from io import BytesIO

from pitchside.storage import StorageManager
from pitchside.models import Team, Player, PlayerIDP, Session, SessionBlock, SessionBlockAttribute
from pitchside.blocks import assign_block_to_session
from pitchside.feedback import save_all_feedback
from pitchside.reports import build_player_report_data, generate_player_report
from pitchside.reports.formatters import format_percentage, format_idp_period, truncate_text


class TestPlayerReport(unittest.TestCase):
    def setUp(self):
        """Set up a player with one trained IDP and one ended IDP"""
        self.temp_dir = tempfile.mkdtemp()
        self.storage = StorageManager(data_dir=self.temp_dir)
        coach = self.storage.create_coach('head@example.com')
        self.club = self.storage.create_club('Riverside FC', coach.id)
        self.team = Team(club_id=self.club.id, name='U12 Blues')
        self.storage.save_team(self.team)
        self.player = Player(club_id=self.club.id, team_id=self.team.id, name='Sam Jones',
                             position='CM', age=11)
        self.storage.save_player(self.player)

        self.storage.save_idp(PlayerIDP(player_id=self.player.id, attribute_key='first_touch',
                                        started_at='2020-01-01T00:00:00'))
        self.storage.save_idp(PlayerIDP(player_id=self.player.id, attribute_key='speed', priority=2,
                                        started_at='2019-01-01T00:00:00', ended_at='2019-12-31T00:00:00'))

        block = SessionBlock(title='Receiving', creator_id=coach.id)
        self.storage.save_block(block)
        self.storage.save_block_attributes(block.id, [
            SessionBlockAttribute(block_id=block.id, attribute_key='first_touch'),
        ])
        session = Session(club_id=self.club.id, team_id=self.team.id, coach_id=coach.id,
                          title='Receiving under pressure', session_date='2025-01-06T18:00')
        self.storage.save_session(session)
        assign_block_to_session(self.storage, session.id, block.id)
        save_all_feedback(self.storage, session, coach.id, None, [
            {'player_id': self.player.id, 'status': 'present'},
        ])

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def test_report_data(self):
        data = build_player_report_data(self.storage, self.player.id)
        self.assertEqual(data.club.name, 'Riverside FC')
        self.assertEqual(data.attendance.sessions_attended, 1)
        self.assertEqual([i.attribute_key for i in data.active_idps], ['first_touch'])
        self.assertEqual([s.session_title for s in data.active_idps[0].sessions], ['Receiving under pressure'])
        self.assertEqual([i.attribute_key for i in data.historical_idps], ['speed'])
        self.assertEqual(data.historical_idps[0].sessions, [])

    def test_missing_player(self):
        with self.assertRaises(ValueError):
            build_player_report_data(self.storage, 'missing')

    def test_player_without_team(self):
        player = Player(club_id=self.club.id, name='No Team')
        self.storage.save_player(player)
        with self.assertRaises(ValueError):
            build_player_report_data(self.storage, player.id)

    def test_generate_pdf_to_buffer(self):
        """Test PDF generation into memory"""
        buffer = BytesIO()
        generate_player_report(build_player_report_data(self.storage, self.player.id), buffer)
        self.assertTrue(buffer.getvalue().startswith(b'%PDF'))

    def test_generate_pdf_to_file(self):
        """Test PDF generation to a file path"""
        output_path = os.path.join(self.temp_dir, 'report.pdf')
        generate_player_report(build_player_report_data(self.storage, self.player.id), output_path)
        self.assertTrue(os.path.exists(output_path))
        self.assertGreater(os.path.getsize(output_path), 0)


class TestFormatters(unittest.TestCase):
    def test_format_percentage(self):
        self.assertEqual(format_percentage(66.666), '66.7%')

    def test_format_idp_period(self):
        self.assertEqual(format_idp_period('2025-09-01T00:00:00'), '01 Sep 2025 - present')
        self.assertEqual(format_idp_period('2025-09-01T00:00:00', '2025-12-15T00:00:00'),
                         '01 Sep 2025 - 15 Dec 2025')

    def test_truncate_text(self):
        self.assertEqual(truncate_text(None), '')
        self.assertEqual(truncate_text('short'), 'short')
        self.assertEqual(truncate_text('a' * 60, 10), 'aaaaaaa...')


if __name__ == '__main__':
    unittest.main()
