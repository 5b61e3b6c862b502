import unittest
import tempfile
import shutil
import os
from datetime import datetime, timedelta

from pitchside.storage import StorageManager
from pitchside.models import (
    ClubRole, Team, Player, PlayerIDP, Session, SessionBlock, SessionBlockAttribute, PlayerTrainingEvent,
    CoachingRule, AttendanceStatus, GameModelZones, GameModelZone, GameModelBlock,
)
from pitchside.utils import TIMESTAMP_FORMAT


class TestStorageManager(unittest.TestCase):
    def setUp(self):
        """Set up test environment with temporary directory"""
        self.temp_dir = tempfile.mkdtemp()
        self.storage = StorageManager(data_dir=self.temp_dir)
        self.coach = self.storage.create_coach('head@example.com', 'Head Coach')
        self.club = self.storage.create_club('Riverside FC', self.coach.id)

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def _team(self, name='U12 Blues'):
        team = Team(club_id=self.club.id, created_by_coach_id=self.coach.id, name=name)
        self.storage.save_team(team)
        return team

    def test_initialize_files(self):
        """Collections are created on first run and the attribute catalogue is seeded"""
        self.assertTrue(os.path.exists(os.path.join(self.temp_dir, 'sessions.json')))
        names = self.storage.get_attribute_names()
        self.assertEqual(names['first_touch'], 'First Touch')
        self.assertEqual(self.storage.get_attribute_categories()['pressing'], 'attributes_out_of_possession')

    def test_corrupt_file_reads_as_empty(self):
        with open(os.path.join(self.temp_dir, 'teams.json'), 'w') as f:
            f.write('{not json')
        self.assertEqual(self.storage.get_club_teams(self.club.id), [])

    def test_create_club_makes_head_coach(self):
        membership = self.storage.get_membership(self.coach.id)
        self.assertEqual(membership.club_id, self.club.id)
        self.assertEqual(membership.role, ClubRole.HEAD_COACH)

    def test_transfer_head_coach(self):
        other = self.storage.create_coach('assistant@example.com')
        self.storage.add_membership(self.club.id, other.id, ClubRole.COACH)

        self.assertTrue(self.storage.transfer_head_coach(self.club.id, self.coach.id, other.id))
        self.assertEqual(self.storage.get_membership(other.id).role, ClubRole.HEAD_COACH)
        self.assertEqual(self.storage.get_membership(self.coach.id).role, ClubRole.ADMIN)

    def test_invites(self):
        invite = self.storage.create_invite(self.club.id, self.coach.id, 'New@Example.com')
        self.assertEqual(invite.email, 'new@example.com')
        self.assertTrue(invite.token)

        self.assertEqual(self.storage.get_invite_by_token(invite.token).id, invite.id)
        self.assertEqual(len(self.storage.get_pending_invites(self.club.id)), 1)

        self.storage.mark_invite_used(invite.id)
        self.assertIsNotNone(self.storage.get_invite_by_token(invite.token).used_at)
        self.assertEqual(self.storage.get_pending_invites(self.club.id), [])

    def test_revoke_invite_checks_club(self):
        invite = self.storage.create_invite(self.club.id, self.coach.id, 'new@example.com')
        self.assertFalse(self.storage.revoke_invite(invite.id, 'another-club'))
        self.assertTrue(self.storage.revoke_invite(invite.id, self.club.id))
        self.assertIsNone(self.storage.get_invite_by_token(invite.token))

    def test_team_coaches(self):
        team = self._team()
        self.storage.assign_coach_to_team(team.id, self.coach.id)
        self.storage.assign_coach_to_team(team.id, self.coach.id)

        self.assertEqual([c.id for c in self.storage.get_team_coaches(team.id)], [self.coach.id])
        self.assertEqual([t.id for t in self.storage.get_coach_teams(self.coach.id)], [team.id])

        self.assertTrue(self.storage.unassign_coach_from_team(team.id, self.coach.id))
        self.assertEqual(self.storage.get_coach_teams(self.coach.id), [])

    def test_set_player_idps_ends_dropped_attributes(self):
        team = self._team()
        player = Player(club_id=self.club.id, team_id=team.id, name='Sam')
        self.storage.save_player(player)

        first = self.storage.set_player_idps(player.id, [
            {'attribute_key': 'first_touch', 'priority': 1},
            {'attribute_key': 'scanning', 'priority': 2},
        ])
        self.assertEqual([i.attribute_key for i in first], ['first_touch', 'scanning'])

        second = self.storage.set_player_idps(player.id, [
            {'attribute_key': 'scanning', 'priority': 1},
            {'attribute_key': 'pressing', 'priority': 2},
        ])
        self.assertEqual([i.attribute_key for i in second], ['scanning', 'pressing'])

        # Scanning keeps its start date
        scanning_before = next(i for i in first if i.attribute_key == 'scanning')
        scanning_after = next(i for i in second if i.attribute_key == 'scanning')
        self.assertEqual(scanning_before.id, scanning_after.id)

        all_idps = self.storage.get_player_idps(player.id)
        ended = [i for i in all_idps if i.ended_at]
        self.assertEqual([i.attribute_key for i in ended], ['first_touch'])

    def test_delete_session_cascades(self):
        team = self._team()
        player = Player(club_id=self.club.id, team_id=team.id, name='Sam')
        self.storage.save_player(player)
        session = Session(club_id=self.club.id, team_id=team.id, coach_id=self.coach.id,
                          title='Rondos', session_date='2025-03-01T10:00')
        self.storage.save_session(session)
        block = SessionBlock(title='4v1 rondo', creator_id=self.coach.id)
        self.storage.save_block(block)

        from pitchside.blocks import assign_block_to_session
        assignment = assign_block_to_session(self.storage, session.id, block.id)
        self.storage.add_exclusion(assignment.id, player.id)
        self.storage.mark_attendance(session.id, player.id, AttendanceStatus.PRESENT)
        self.storage.replace_session_training_events(session.id, [
            PlayerTrainingEvent(player_id=player.id, session_id=session.id, attribute_key='first_touch'),
        ])

        self.assertTrue(self.storage.delete_session(session.id))
        self.assertIsNone(self.storage.get_session(session.id))
        self.assertEqual(self.storage.get_session_attendance(session.id), [])
        self.assertEqual(self.storage.get_session_assignments(session.id), [])
        self.assertEqual(self.storage.get_exclusions(assignment.id), [])
        self.assertEqual(self.storage.get_player_training_events(player.id), [])
        # The block itself survives
        self.assertIsNotNone(self.storage.get_block(block.id))

    def test_block_attributes_sorted(self):
        block = SessionBlock(title='Finishing')
        self.storage.save_block(block)
        self.storage.save_block_attributes(block.id, [
            SessionBlockAttribute(block_id=block.id, attribute_key='shot_stopping', relevance=0.9, order_type='second'),
            SessionBlockAttribute(block_id=block.id, attribute_key='first_touch', relevance=0.5),
            SessionBlockAttribute(block_id=block.id, attribute_key='finishing', relevance=1.0),
        ])
        keys = [a.attribute_key for a in self.storage.get_block_attributes(block.id)]
        self.assertEqual(keys, ['finishing', 'first_touch', 'shot_stopping'])

    def test_otp_codes(self):
        expires = (datetime.now() + timedelta(minutes=10)).strftime(TIMESTAMP_FORMAT)
        self.storage.create_otp_code('coach@example.com', '123456', expires)

        self.assertFalse(self.storage.verify_otp_code('coach@example.com', '000000'))
        self.assertTrue(self.storage.verify_otp_code('Coach@Example.com', '123456'))
        # Consumed
        self.assertFalse(self.storage.verify_otp_code('coach@example.com', '123456'))

    def test_otp_attempt_limit(self):
        expires = (datetime.now() + timedelta(minutes=10)).strftime(TIMESTAMP_FORMAT)
        self.storage.create_otp_code('coach@example.com', '123456', expires)
        for _ in range(5):
            self.assertFalse(self.storage.verify_otp_code('coach@example.com', '999999'))
        # Code was discarded after the fifth failure
        self.assertFalse(self.storage.verify_otp_code('coach@example.com', '123456'))

    def test_delete_otp_code(self):
        expires = (datetime.now() + timedelta(minutes=10)).strftime(TIMESTAMP_FORMAT)
        self.storage.create_otp_code('coach@example.com', '123456', expires)
        self.assertTrue(self.storage.delete_otp_code('COACH@example.com'))
        self.assertFalse(self.storage.delete_otp_code('coach@example.com'))
        self.assertFalse(self.storage.verify_otp_code('coach@example.com', '123456'))

    def test_expired_otp_code(self):
        expired = (datetime.now() - timedelta(minutes=1)).strftime(TIMESTAMP_FORMAT)
        self.storage.create_otp_code('coach@example.com', '123456', expired)
        self.assertFalse(self.storage.verify_otp_code('coach@example.com', '123456'))

    def test_ensure_coach_profile(self):
        coach = self.storage.ensure_coach_profile('new.coach@example.com')
        self.assertEqual(coach.name, 'new.coach')
        self.assertEqual(self.storage.ensure_coach_profile('NEW.coach@example.com').id, coach.id)

    def test_rules(self):
        team = self._team()
        global_rule = CoachingRule(coach_id=self.coach.id, content='Always use a ball')
        team_rule = CoachingRule(coach_id=self.coach.id, team_id=team.id, content='Short sessions')
        self.storage.save_rule(global_rule)
        self.storage.save_rule(team_rule)

        self.assertEqual([r.id for r in self.storage.get_global_rules(self.coach.id)], [global_rule.id])
        self.assertEqual([r.id for r in self.storage.get_team_rules(self.coach.id, team.id)], [team_rule.id])

        toggled = self.storage.toggle_rule(global_rule.id)
        self.assertFalse(toggled.is_active)

    def test_methodology_copy_and_revert(self):
        zones = GameModelZones(zones=[GameModelZone(
            name='Defensive third',
            in_possession=[GameModelBlock(name='Play out from the back')],
        )])
        self.storage.save_zones(self.club.id, zones, coach_id=self.coach.id)

        team = self._team()
        copied = self.storage.copy_club_methodology_to_team(team.id, self.club.id, self.coach.id)
        self.assertEqual(copied, 1)
        self.assertEqual(self.storage.get_zones(self.club.id, team.id).zones[0].name, 'Defensive third')

        team_zones = GameModelZones(zones=[GameModelZone(name='Middle third')])
        self.storage.save_zones(self.club.id, team_zones, team.id)
        self.assertEqual(self.storage.get_zones(self.club.id, team.id).zones[0].name, 'Middle third')
        # The club game model is untouched
        self.assertEqual(self.storage.get_zones(self.club.id).zones[0].name, 'Defensive third')

        self.storage.revert_team_playing_methodology(team.id, self.club.id)
        self.assertEqual(self.storage.get_zones(self.club.id, team.id).zones[0].name, 'Defensive third')

    def test_team_facilities(self):
        team = self._team()
        self.assertIsNone(self.storage.get_team_facilities(team.id))
        facility = self.storage.save_team_facilities(
            team.id, space_type='half_pitch', equipment=[{'type': 'cones', 'quantity': 20}],
        )
        self.assertEqual(facility.equipment[0].quantity, 20)
        self.assertEqual(self.storage.get_team_facilities(team.id).space_type, 'half_pitch')

    def test_rule_toggle_upsert(self):
        team = self._team()
        self.storage.set_rule_toggle(team.id, 'rule-1', False)
        self.storage.set_rule_toggle(team.id, 'rule-1', True)
        toggles = self.storage.get_rule_toggles(team.id)
        self.assertEqual(len(toggles), 1)
        self.assertTrue(toggles[0].is_enabled)

    def test_end_idp(self):
        idp = PlayerIDP(player_id='p1', attribute_key='speed')
        self.storage.save_idp(idp)
        self.assertTrue(self.storage.end_idp(idp.id))
        self.assertFalse(self.storage.end_idp(idp.id))
        self.assertEqual(self.storage.get_active_idps('p1'), [])


if __name__ == '__main__':
    unittest.main()
