"""
Session block operations: picker lists, assignment into sessions,
copy-on-write editing and simultaneous-practice groups.
"""

import logging
from typing import Optional, List, Dict, Any, Iterable

from .models import SessionBlock, SessionBlockAssignment, SessionBlockAttribute, BlockSource
from .storage import StorageManager

logger = logging.getLogger(__name__)

EDITABLE_BLOCK_FIELDS = (
    'title', 'description', 'coaching_points', 'image_url', 'diagram_data', 'duration', 'ball_rolling',
)

MAX_GROUP_SIZE = 2


def _apply_updates(block: SessionBlock, updates: Dict[str, Any]) -> SessionBlock:
    changes = {k: v for k, v in updates.items() if k in EDITABLE_BLOCK_FIELDS}
    # Re-validate through the model
    return SessionBlock(**{**block.model_dump(), **changes})


def next_position(storage: StorageManager, session_id: str) -> int:
    assignments = storage.get_session_assignments(session_id)
    return max((a.position for a in assignments), default=-1) + 1


def assign_block_to_session(storage: StorageManager, session_id: str, block_id: str,
                            position: Optional[int] = None, slot_index: int = 0) -> SessionBlockAssignment:
    """Place a block into a session; appended after the last position by default"""
    if storage.get_block(block_id) is None:
        raise ValueError('Block not found')
    if position is None:
        position = next_position(storage, session_id)
    assignment = SessionBlockAssignment(
        session_id=session_id, block_id=block_id, position=position, slot_index=slot_index,
    )
    storage.save_assignment(assignment)
    return assignment


def create_and_assign_block(storage: StorageManager, block: SessionBlock, session_id: str,
                            position: Optional[int] = None, slot_index: int = 0,
                            attributes: Optional[List[SessionBlockAttribute]] = None):
    """Create a block and assign it to a session in one step.

    If the assignment cannot be written the new block is deleted again so no
    orphan block is left behind.
    """
    storage.save_block(block)
    try:
        if attributes:
            storage.save_block_attributes(block.id, attributes)
        assignment = assign_block_to_session(storage, session_id, block.id, position, slot_index)
    except (ValueError, RuntimeError):
        logger.warning("Rolling back block %s after failed assignment", block.id)
        storage.delete_block(block.id)
        raise
    return block, assignment


def edit_block_with_copy_on_write(storage: StorageManager, block_id: str, assignment_id: Optional[str],
                                  coach_id: str, club_id: Optional[str],
                                  updates: Dict[str, Any]) -> Dict[str, Any]:
    """Edit a block as seen from one session.

    The block's creator edits it in place. Anyone else gets a private copy
    carrying the edits and the original attributes, and the assignment is
    re-pointed at the copy.
    """
    block = storage.get_block(block_id)
    if block is None:
        raise ValueError('Block not found')

    if block.creator_id == coach_id:
        updated = _apply_updates(block, updates)
        storage.save_block(updated)
        return {'block': updated, 'copied': False, 'assignment': None}

    assignment = storage.get_assignment(assignment_id) if assignment_id else None
    if assignment is None or assignment.block_id != block_id:
        raise ValueError('Assignment not found for this block')

    data = _apply_updates(block, updates).model_dump(exclude={'id', 'created_at', 'updated_at'})
    data.update(creator_id=coach_id, club_id=club_id, is_public=False, source=BlockSource.USER)
    copy = SessionBlock(**data)
    storage.save_block(copy)

    attributes = [
        SessionBlockAttribute(**a.model_dump(exclude={'id', 'block_id'}), block_id=copy.id)
        for a in storage.get_block_attributes(block_id)
    ]
    if attributes:
        storage.save_block_attributes(copy.id, attributes)

    assignment.block_id = copy.id
    storage.save_assignment(assignment)
    logger.info("Block %s copied to %s for coach %s", block_id, copy.id, coach_id)
    return {'block': copy, 'copied': True, 'assignment': assignment}


def is_block_visible(block: SessionBlock, coach_id: str, club_id: Optional[str]) -> bool:
    """A coach sees their own blocks, their club's blocks, public blocks and the defaults"""
    return (
        block.creator_id == coach_id
        or bool(club_id and block.club_id == club_id)
        or block.is_public
        or block.source == BlockSource.SYSTEM
    )


def get_blocks_for_picker(storage: StorageManager, coach_id: str, club_id: Optional[str]) -> Dict[str, List[SessionBlock]]:
    """Split visible blocks into the coach's own, the club's and the defaults"""
    my_blocks, club_blocks, default_blocks = [], [], []
    for block in storage.get_all_blocks():
        if not is_block_visible(block, coach_id, club_id):
            continue
        if block.creator_id == coach_id:
            my_blocks.append(block)
        elif club_id and block.club_id == club_id:
            club_blocks.append(block)
        else:
            default_blocks.append(block)
    for blocks in (my_blocks, club_blocks, default_blocks):
        blocks.sort(key=lambda b: b.title.lower())
    return {'my_blocks': my_blocks, 'club_blocks': club_blocks, 'default_blocks': default_blocks}


def group_blocks_by_position(assignments: Iterable[SessionBlockAssignment]) -> List[List[SessionBlockAssignment]]:
    """Group assignments sharing a position (simultaneous practices)"""
    groups: Dict[int, List[SessionBlockAssignment]] = {}
    for assignment in assignments:
        groups.setdefault(assignment.position, []).append(assignment)
    return [
        sorted(groups[position], key=lambda a: a.slot_index)
        for position in sorted(groups)
    ]


def add_simultaneous_practice(storage: StorageManager, session_id: str, block_id: str,
                              position: int) -> SessionBlockAssignment:
    """Run a second block alongside the one already at this position"""
    group = [a for a in storage.get_session_assignments(session_id) if a.position == position]
    if not group:
        raise ValueError('There is no block at this position')
    if len(group) >= MAX_GROUP_SIZE:
        raise ValueError(f'A position can hold at most {MAX_GROUP_SIZE} simultaneous practices')
    used_slots = {a.slot_index for a in group}
    slot_index = 1 if 1 not in used_slots else 0
    return assign_block_to_session(storage, session_id, block_id, position, slot_index)


def remove_from_group(storage: StorageManager, assignment_id: str) -> bool:
    """Remove one block of a group; the remaining block moves into slot 0"""
    assignment = storage.get_assignment(assignment_id)
    if assignment is None:
        return False
    storage.delete_assignment(assignment_id)
    if assignment.slot_index == 0:
        for other in storage.get_session_assignments(assignment.session_id):
            if other.position == assignment.position and other.slot_index == 1:
                other.slot_index = 0
                storage.save_assignment(other)
    return True


def update_assignment_positions(storage: StorageManager, session_id: str,
                                updates: List[Dict[str, Any]]) -> List[SessionBlockAssignment]:
    """Apply explicit {id, position, slot_index} updates to a session's assignments"""
    by_id = {a.id: a for a in storage.get_session_assignments(session_id)}
    changed = []
    for update in updates:
        assignment = by_id.get(update.get('id'))
        if assignment is None:
            raise ValueError(f"Assignment {update.get('id')} is not part of this session")
        data = assignment.model_dump()
        data['position'] = int(update.get('position', assignment.position))
        data['slot_index'] = int(update.get('slot_index', assignment.slot_index))
        changed.append(SessionBlockAssignment(**data))
    storage.save_assignments(changed)
    return storage.get_session_assignments(session_id)


def update_group_positions(storage: StorageManager, session_id: str,
                           ordered_positions: List[int]) -> List[SessionBlockAssignment]:
    """Reorder groups: ordered_positions lists the current positions in their new order"""
    assignments = storage.get_session_assignments(session_id)
    current = sorted({a.position for a in assignments})
    if sorted(ordered_positions) != current:
        raise ValueError('Positions must list every group of the session exactly once')
    new_position = {old: index for index, old in enumerate(ordered_positions)}
    for assignment in assignments:
        assignment.position = new_position[assignment.position]
    storage.save_assignments(assignments)
    return storage.get_session_assignments(session_id)


def sync_group_duration(storage: StorageManager, session_id: str, position: int, duration: int) -> List[SessionBlock]:
    """Give every block of a simultaneous group the same duration"""
    if duration < 0:
        raise ValueError('Duration must be non-negative')
    group = [a for a in storage.get_session_assignments(session_id) if a.position == position]
    blocks = storage.get_blocks_by_ids(a.block_id for a in group)
    for block in blocks.values():
        block.duration = duration
        storage.save_block(block)
    return list(blocks.values())


def get_session_blocks(storage: StorageManager, session_id: str) -> List[Dict[str, Any]]:
    """Assignments of a session joined with their blocks, attributes and exclusions"""
    assignments = storage.get_session_assignments(session_id)
    blocks = storage.get_blocks_by_ids(a.block_id for a in assignments)
    attributes = storage.get_attributes_for_blocks(blocks.keys())
    exclusions = storage.get_exclusions_for_assignments(a.id for a in assignments)
    result = []
    for assignment in assignments:
        block = blocks.get(assignment.block_id)
        if block is None:
            continue
        result.append({
            'assignment_id': assignment.id,
            'position': assignment.position,
            'slot_index': assignment.slot_index,
            'block': block.model_dump(mode='json'),
            'attributes': [a.model_dump(mode='json') for a in attributes.get(block.id, [])],
            'excluded_player_ids': sorted(exclusions.get(assignment.id, set())),
        })
    return result
