import unittest

from pitchside.ai import strip_code_fences
from pitchside.ai.prompts import (
    format_game_model_context, format_session_theme_context, format_player_idp_context,
    build_description_prompt, build_coaching_points_prompt, build_outcomes_prompt, build_coach_system_prompt,
    build_chat_messages,
)
from pitchside.models import GameModelZones, GameModelZone, GameModelBlock, SessionThemeSnapshot, BlockType


class TestContextFormatting(unittest.TestCase):
    def test_game_model_context(self):
        self.assertEqual(format_game_model_context(None), 'No game model defined.')
        zones = GameModelZones(zones=[GameModelZone(
            name='Defensive third',
            in_possession=[GameModelBlock(name='Play out'), GameModelBlock(name='')],
            out_of_possession=[GameModelBlock(name='Compact block')],
        )])
        self.assertEqual(
            format_game_model_context(zones),
            'Defensive third:\n  - In Possession: Play out\n  - Out of Possession: Compact block',
        )

    def test_session_theme_context(self):
        self.assertEqual(format_session_theme_context(None), 'No specific theme set for this session.')
        theme = SessionThemeSnapshot(zone_name='Final third', block_name='Counter press',
                                     block_type=BlockType.OUT_OF_POSSESSION)
        self.assertEqual(format_session_theme_context(theme), 'Final third - Counter press (Out of Possession)')

    def test_player_idp_context(self):
        self.assertEqual(format_player_idp_context(None), '')
        self.assertEqual(format_player_idp_context([{'name': 'Sam', 'idps': []}]), '')

        context = format_player_idp_context([
            {'name': 'Sam', 'position': 'CM', 'idps': [
                {'attribute_key': 'first_touch', 'priority': 1, 'days_since_trained': None,
                 'training_sessions': 0, 'positive_mentions': 0, 'negative_mentions': 0},
                {'attribute_key': 'scanning', 'priority': 2, 'days_since_trained': 20,
                 'training_sessions': 2, 'positive_mentions': 3, 'negative_mentions': 1},
            ]},
        ])
        self.assertTrue(context.startswith('PLAYER DEVELOPMENT FOCUS'))
        self.assertIn('- Sam (CM): first touch, primary, never trained - INTRODUCE', context)
        self.assertIn(
            'scanning, secondary, 20 days since trained - NEEDS ATTENTION, positive progress - REINFORCE, '
            'only 2 sessions',
            context,
        )


class TestPrompts(unittest.TestCase):
    def test_description_prompt(self):
        prompt = build_description_prompt('4v2 Rondo', None, None)
        self.assertIn('"4v2 Rondo"', prompt)
        self.assertIn('No game model defined.', prompt)

    def test_coaching_points_guidance_only_with_players(self):
        without = build_coaching_points_prompt('Rondo', 'Keep the ball', None, None, [])
        self.assertNotIn('PLAYER-SPECIFIC COACHING GUIDANCE', without)

        players = [{'name': 'Sam', 'idps': [{'attribute_key': 'scanning', 'priority': 1}]}]
        with_players = build_coaching_points_prompt('Rondo', 'Keep the ball', None, None, players)
        self.assertIn('PLAYER-SPECIFIC COACHING GUIDANCE', with_players)
        self.assertIn('- Sam: scanning, primary', with_players)

    def test_outcomes_prompt_groups_attributes(self):
        prompt = build_outcomes_prompt('second', 'Finishing', 'Shots on goal', [
            {'key': 'finishing', 'name': 'Finishing', 'category': 'attributes_in_possession'},
            {'key': 'shot_stopping', 'name': 'Shot Stopping', 'category': 'attributes_physical'},
        ])
        self.assertIn('Select 1 to 3 second-order outcomes', prompt)
        self.assertIn('In Possession:\n  - finishing (Finishing)', prompt)
        self.assertIn('Physical:\n  - shot_stopping (Shot Stopping)', prompt)

    def test_coach_system_prompt(self):
        prompt = build_coach_system_prompt(
            {'id': 's1', 'title': 'Rondos', 'date': '2025-03-01T10:00:00', 'team_id': 't1'},
            {'name': 'U12 Blues', 'age_group': 'U12', 'skill_level': 'beginner', 'player_count': 14,
             'session_duration': 75},
            [{'content': 'Always use a ball'}],
            [],
        )
        self.assertIn('GLOBAL COACHING METHODOLOGY RULES:\n- Always use a ball', prompt)
        self.assertNotIn('TEAM-SPECIFIC COACHING RULES', prompt)
        self.assertIn('Ensure activities fit within 75 minutes', prompt)
        self.assertIn('"intent": "question"', prompt)

    def test_chat_messages(self):
        messages = build_chat_messages(
            [{'type': 'user', 'content': 'Hi'}, {'type': 'assistant', 'content': 'Hello'}],
            'Warm up 10 min',
            'Make it shorter',
        )
        self.assertEqual([m['role'] for m in messages], ['user', 'assistant', 'user'])
        self.assertEqual(messages[-1]['content'],
                         'Current session plan:\n\nWarm up 10 min\n\nUser request: Make it shorter')


class TestStripCodeFences(unittest.TestCase):
    def test_strip(self):
        self.assertEqual(strip_code_fences('```json\n["a", "b"]\n```'), '["a", "b"]')
        self.assertEqual(strip_code_fences('```\n{"x": 1}\n```'), '{"x": 1}')
        self.assertEqual(strip_code_fences('  plain text  '), 'plain text')


if __name__ == '__main__':
    unittest.main()
