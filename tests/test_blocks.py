import unittest
import tempfile
import shutil

from pitchside.storage import StorageManager
from pitchside.models import Team, Player, Session, SessionBlock, SessionBlockAttribute, BlockSource
from pitchside import blocks
from pitchside.block_attendance import (
    toggle_player_inclusion, set_block_exclusions, get_exclusion_count, get_block_players,
    get_players_with_idp_context,
)


class BlockTestCase(unittest.TestCase):
    def setUp(self):
        """Set up a club with one team, one session and a coach"""
        self.temp_dir = tempfile.mkdtemp()
        self.storage = StorageManager(data_dir=self.temp_dir)
        self.coach = self.storage.create_coach('head@example.com')
        self.club = self.storage.create_club('Riverside FC', self.coach.id)
        self.team = Team(club_id=self.club.id, name='U12 Blues')
        self.storage.save_team(self.team)
        self.session = Session(club_id=self.club.id, team_id=self.team.id, coach_id=self.coach.id,
                               title='Possession', session_date='2025-03-01T10:00')
        self.storage.save_session(self.session)

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def _block(self, title, **kwargs):
        kwargs.setdefault('creator_id', self.coach.id)
        block = SessionBlock(title=title, **kwargs)
        self.storage.save_block(block)
        return block


class TestSessionBlocks(BlockTestCase):
    def test_assign_appends_positions(self):
        first = blocks.assign_block_to_session(self.storage, self.session.id, self._block('Warm up').id)
        second = blocks.assign_block_to_session(self.storage, self.session.id, self._block('Rondo').id)
        self.assertEqual((first.position, second.position), (0, 1))

    def test_assign_unknown_block(self):
        with self.assertRaises(ValueError):
            blocks.assign_block_to_session(self.storage, self.session.id, 'missing')

    def test_create_and_assign(self):
        block = SessionBlock(title='Switch play', creator_id=self.coach.id)
        attributes = [SessionBlockAttribute(block_id='pending', attribute_key='passing_long')]
        created, assignment = blocks.create_and_assign_block(
            self.storage, block, self.session.id, attributes=attributes,
        )
        self.assertEqual(assignment.block_id, created.id)
        self.assertEqual([a.block_id for a in self.storage.get_block_attributes(created.id)], [created.id])

    def test_creator_edits_in_place(self):
        block = self._block('Rondo')
        result = blocks.edit_block_with_copy_on_write(
            self.storage, block.id, None, self.coach.id, self.club.id, {'title': '5v2 Rondo', 'creator_id': 'x'},
        )
        self.assertFalse(result['copied'])
        stored = self.storage.get_block(block.id)
        self.assertEqual(stored.title, '5v2 Rondo')
        # Fields outside the editable set are ignored
        self.assertEqual(stored.creator_id, self.coach.id)

    def test_other_coach_gets_a_copy(self):
        original = self._block('Pressing game', creator_id='someone-else', is_public=True, source=BlockSource.SYSTEM)
        self.storage.save_block_attributes(original.id, [
            SessionBlockAttribute(block_id=original.id, attribute_key='pressing', relevance=0.8),
        ])
        assignment = blocks.assign_block_to_session(self.storage, self.session.id, original.id)

        result = blocks.edit_block_with_copy_on_write(
            self.storage, original.id, assignment.id, self.coach.id, self.club.id, {'duration': 25},
        )
        self.assertTrue(result['copied'])
        copy = result['block']
        self.assertNotEqual(copy.id, original.id)
        self.assertEqual(copy.creator_id, self.coach.id)
        self.assertFalse(copy.is_public)
        self.assertEqual(copy.source, BlockSource.USER)
        self.assertEqual(copy.duration, 25)
        self.assertEqual([a.attribute_key for a in self.storage.get_block_attributes(copy.id)], ['pressing'])

        # The original is untouched and the assignment now points at the copy
        self.assertEqual(self.storage.get_block(original.id).duration, 15)
        self.assertEqual(self.storage.get_assignment(assignment.id).block_id, copy.id)

    def test_copy_needs_matching_assignment(self):
        original = self._block('Pressing game', creator_id='someone-else')
        with self.assertRaises(ValueError):
            blocks.edit_block_with_copy_on_write(
                self.storage, original.id, None, self.coach.id, self.club.id, {'duration': 25},
            )

    def test_picker_lists(self):
        self._block('Mine')
        self._block('Club drill', creator_id='colleague', club_id=self.club.id)
        self._block('Default drill', creator_id=None, source=BlockSource.SYSTEM)
        self._block('Other club drill', creator_id='stranger', club_id='other-club')

        picker = blocks.get_blocks_for_picker(self.storage, self.coach.id, self.club.id)
        self.assertEqual([b.title for b in picker['my_blocks']], ['Mine'])
        self.assertEqual([b.title for b in picker['club_blocks']], ['Club drill'])
        self.assertEqual([b.title for b in picker['default_blocks']], ['Default drill'])

    def test_block_visibility(self):
        self.assertTrue(blocks.is_block_visible(self._block('Mine'), self.coach.id, self.club.id))
        club = self._block('Club drill', creator_id='colleague', club_id=self.club.id)
        self.assertTrue(blocks.is_block_visible(club, self.coach.id, self.club.id))
        public = self._block('Shared drill', creator_id='stranger', club_id='other-club', is_public=True)
        self.assertTrue(blocks.is_block_visible(public, self.coach.id, self.club.id))
        system = self._block('Default drill', creator_id=None, source=BlockSource.SYSTEM)
        self.assertTrue(blocks.is_block_visible(system, self.coach.id, self.club.id))

        private = self._block('Other club drill', creator_id='stranger', club_id='other-club')
        self.assertFalse(blocks.is_block_visible(private, self.coach.id, self.club.id))
        # Without a club only own, public and default blocks are visible
        unclubbed = self._block('Unclubbed', creator_id='stranger')
        self.assertFalse(blocks.is_block_visible(unclubbed, self.coach.id, None))


class TestSimultaneousPractices(BlockTestCase):
    def setUp(self):
        super().setUp()
        self.first = blocks.assign_block_to_session(self.storage, self.session.id, self._block('Warm up').id)
        self.second = blocks.assign_block_to_session(self.storage, self.session.id, self._block('Rondo').id)

    def test_add_and_group(self):
        partner = blocks.add_simultaneous_practice(self.storage, self.session.id, self._block('GK').id, 1)
        self.assertEqual((partner.position, partner.slot_index), (1, 1))

        groups = blocks.group_blocks_by_position(self.storage.get_session_assignments(self.session.id))
        self.assertEqual([len(g) for g in groups], [1, 2])

    def test_group_is_limited_to_two(self):
        blocks.add_simultaneous_practice(self.storage, self.session.id, self._block('GK').id, 1)
        with self.assertRaises(ValueError):
            blocks.add_simultaneous_practice(self.storage, self.session.id, self._block('Extra').id, 1)
        with self.assertRaises(ValueError):
            blocks.add_simultaneous_practice(self.storage, self.session.id, self._block('Extra').id, 7)

    def test_remove_primary_promotes_partner(self):
        partner = blocks.add_simultaneous_practice(self.storage, self.session.id, self._block('GK').id, 1)
        self.assertTrue(blocks.remove_from_group(self.storage, self.second.id))
        self.assertEqual(self.storage.get_assignment(partner.id).slot_index, 0)
        self.assertFalse(blocks.remove_from_group(self.storage, self.second.id))

    def test_update_group_positions(self):
        assignments = blocks.update_group_positions(self.storage, self.session.id, [1, 0])
        self.assertEqual([a.id for a in assignments], [self.second.id, self.first.id])

        with self.assertRaises(ValueError):
            blocks.update_group_positions(self.storage, self.session.id, [0])

    def test_update_assignment_positions(self):
        assignments = blocks.update_assignment_positions(self.storage, self.session.id, [
            {'id': self.second.id, 'position': 0, 'slot_index': 1},
        ])
        self.assertEqual([(a.position, a.slot_index) for a in assignments], [(0, 0), (0, 1)])

        with self.assertRaises(ValueError):
            blocks.update_assignment_positions(self.storage, self.session.id, [{'id': 'nope', 'position': 0}])

    def test_sync_group_duration(self):
        blocks.add_simultaneous_practice(self.storage, self.session.id, self._block('GK').id, 1)
        updated = blocks.sync_group_duration(self.storage, self.session.id, 1, 20)
        self.assertEqual(sorted(b.duration for b in updated), [20, 20])
        self.assertEqual(self.storage.get_block(self.first.block_id).duration, 15)

    def test_session_blocks_payload(self):
        rows = blocks.get_session_blocks(self.storage, self.session.id)
        self.assertEqual([r['block']['title'] for r in rows], ['Warm up', 'Rondo'])
        self.assertEqual(rows[0]['excluded_player_ids'], [])


class TestBlockAttendance(BlockTestCase):
    def setUp(self):
        super().setUp()
        self.player = Player(club_id=self.club.id, team_id=self.team.id, name='Sam')
        self.other = Player(club_id=self.club.id, team_id=self.team.id, name='Alex')
        self.storage.save_player(self.player)
        self.storage.save_player(self.other)
        self.assignment = blocks.assign_block_to_session(self.storage, self.session.id, self._block('Rondo').id)

    def test_toggle_inclusion(self):
        self.assertFalse(toggle_player_inclusion(self.storage, self.assignment.id, self.player.id))
        self.assertEqual(get_exclusion_count(self.storage, self.assignment.id), 1)
        players = {p['id']: p['included'] for p in get_block_players(self.storage, self.assignment.id, self.team.id)}
        self.assertEqual(players, {self.player.id: False, self.other.id: True})

        self.assertTrue(toggle_player_inclusion(self.storage, self.assignment.id, self.player.id))
        self.assertEqual(get_exclusion_count(self.storage, self.assignment.id), 0)

    def test_set_exclusions_replaces(self):
        set_block_exclusions(self.storage, self.assignment.id, [self.player.id, self.player.id])
        self.assertEqual(get_exclusion_count(self.storage, self.assignment.id), 1)
        excluded = set_block_exclusions(self.storage, self.assignment.id, [self.other.id])
        self.assertEqual(excluded, [self.other.id])

    def test_idp_context(self):
        self.storage.set_player_idps(self.player.id, [{'attribute_key': 'scanning', 'priority': 1}])
        context = {p['id']: p for p in get_players_with_idp_context(self.storage, self.team.id)}

        idps = context[self.player.id]['idps']
        self.assertEqual(len(idps), 1)
        self.assertEqual(idps[0]['attribute_key'], 'scanning')
        self.assertIsNone(idps[0]['days_since_trained'])
        self.assertEqual(idps[0]['training_sessions'], 0)
        self.assertEqual(context[self.other.id]['idps'], [])


if __name__ == '__main__':
    unittest.main()
