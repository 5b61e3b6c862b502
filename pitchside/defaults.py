"""
Seed data for system defaults: the Four Corners attribute catalogue,
playing positions, training space options and equipment.
"""

ATTRIBUTE_CATEGORIES = [
    'attributes_in_possession',
    'attributes_out_of_possession',
    'attributes_physical',
    'attributes_psychological',
]

CATEGORY_LABELS = {
    'attributes_in_possession': 'In Possession',
    'attributes_out_of_possession': 'Out of Possession',
    'attributes_physical': 'Physical',
    'attributes_psychological': 'Psychological',
}

CATEGORY_COLORS = {
    'attributes_in_possession': '#3b82f6',
    'attributes_out_of_possession': '#ef4444',
    'attributes_physical': '#22c55e',
    'attributes_psychological': '#a855f7',
}

_ATTRIBUTES = {
    'attributes_in_possession': [
        ('first_touch', 'First Touch'),
        ('passing_short', 'Short Passing'),
        ('passing_long', 'Long Passing'),
        ('dribbling', 'Dribbling'),
        ('ball_manipulation', 'Ball Manipulation'),
        ('finishing', 'Finishing'),
        ('crossing', 'Crossing'),
        ('receiving_on_the_half_turn', 'Receiving on the Half Turn'),
        ('scanning', 'Scanning'),
        ('movement_off_the_ball', 'Movement off the Ball'),
    ],
    'attributes_out_of_possession': [
        ('pressing', 'Pressing'),
        ('tackling', 'Tackling'),
        ('intercepting', 'Intercepting'),
        ('defensive_positioning', 'Defensive Positioning'),
        ('marking', 'Marking'),
        ('recovery_runs', 'Recovery Runs'),
        ('aerial_duels', 'Aerial Duels'),
        ('shot_stopping', 'Shot Stopping'),
    ],
    'attributes_physical': [
        ('speed', 'Speed'),
        ('agility', 'Agility'),
        ('balance', 'Balance'),
        ('coordination', 'Coordination'),
        ('endurance', 'Endurance'),
        ('strength', 'Strength'),
    ],
    'attributes_psychological': [
        ('decision_making', 'Decision Making'),
        ('communication', 'Communication'),
        ('concentration', 'Concentration'),
        ('confidence', 'Confidence'),
        ('resilience', 'Resilience'),
        ('leadership', 'Leadership'),
    ],
}

_POSITIONS = [
    ('goalkeeper', 'Goalkeeper', 'GK', ['shot_stopping', 'communication', 'passing_long']),
    ('centre_back', 'Centre Back', 'CB', ['defensive_positioning', 'aerial_duels', 'passing_short']),
    ('full_back', 'Full Back', 'FB', ['recovery_runs', 'crossing', 'speed']),
    ('defensive_midfielder', 'Defensive Midfielder', 'DM', ['intercepting', 'scanning', 'passing_short']),
    ('central_midfielder', 'Central Midfielder', 'CM', ['receiving_on_the_half_turn', 'scanning', 'endurance']),
    ('attacking_midfielder', 'Attacking Midfielder', 'AM', ['ball_manipulation', 'decision_making', 'finishing']),
    ('winger', 'Winger', 'W', ['dribbling', 'crossing', 'speed']),
    ('striker', 'Striker', 'ST', ['finishing', 'movement_off_the_ball', 'first_touch']),
]

_SPACE_OPTIONS = [
    ('full_pitch', 'Full pitch'),
    ('half_pitch', 'Half pitch'),
    ('third_pitch', 'Third of a pitch'),
    ('indoor_hall', 'Indoor hall'),
    ('astro_cage', 'Small-sided astro cage'),
]

_EQUIPMENT = [
    ('balls', 'Balls'),
    ('cones', 'Cones'),
    ('bibs', 'Bibs'),
    ('mini_goals', 'Mini goals'),
    ('full_goals', 'Full-size goals'),
    ('poles', 'Poles'),
    ('hurdles', 'Hurdles'),
    ('ladders', 'Agility ladders'),
]


def build_system_defaults() -> list:
    """Return the seed rows for the system_defaults collection"""
    rows = []
    for category in ATTRIBUTE_CATEGORIES:
        for order, (key, name) in enumerate(_ATTRIBUTES[category]):
            rows.append({
                'id': f"{category}:{key}",
                'category': category,
                'key': key,
                'value': {'name': name},
                'display_order': order,
                'is_active': True,
            })
    for order, (key, name, abbreviation, attributes) in enumerate(_POSITIONS):
        rows.append({
            'id': f"positions:{key}",
            'category': 'positions',
            'key': key,
            'value': {'name': name, 'abbreviation': abbreviation, 'default_attributes': attributes},
            'display_order': order,
            'is_active': True,
        })
    for order, (key, name) in enumerate(_SPACE_OPTIONS):
        rows.append({
            'id': f"space_options:{key}",
            'category': 'space_options',
            'key': key,
            'value': {'name': name},
            'display_order': order,
            'is_active': True,
        })
    for order, (key, name) in enumerate(_EQUIPMENT):
        rows.append({
            'id': f"equipment:{key}",
            'category': 'equipment',
            'key': key,
            'value': {'name': name},
            'display_order': order,
            'is_active': True,
        })
    return rows
