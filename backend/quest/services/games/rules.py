import random
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

QR_PATTERN = re.compile(r'ROOM_(\d+)')


@dataclass(frozen=True)
class Rules:
    terminal_room: int = 49
    min_players: int = 2
    max_players_limit: int = 4
    correct_points: int = 100
    wrong_penalty: int = 100
    rooms_back: int = 2

    @classmethod
    def from_config(cls, config) -> 'Rules':
        return cls(
            terminal_room=int(config.get('TERMINAL_ROOM', 49)),
            min_players=int(config.get('MIN_PLAYERS', 2)),
            max_players_limit=int(config.get('MAX_PLAYERS_LIMIT', 4)),
            correct_points=int(config.get('CORRECT_ANSWER_POINTS', 100)),
            wrong_penalty=int(config.get('WRONG_ANSWER_PENALTY', 100)),
            rooms_back=int(config.get('WRONG_ANSWER_ROOMS_BACK', 2)),
        )


def roll_die() -> int:
    return random.randint(1, 6)


def advance_position(position: int, roll: int, terminal_room: int) -> int:
    """Move forward ``roll`` rooms, stopping at the terminal room."""
    return min(position + roll, terminal_room)


def parse_qr(qr_text: str) -> Optional[int]:
    """Extract the room number from a ``ROOM_<n>`` token, or None."""
    if not isinstance(qr_text, str):
        return None
    match = QR_PATTERN.search(qr_text)
    if not match:
        return None
    return int(match.group(1))


def is_correct_answer(submitted: str, correct: str) -> bool:
    # Exact match after trimming and case folding; no fuzzy matching
    return (submitted or '').strip().lower() == (correct or '').strip().lower()


def score_answer(position: int, score: int, correct: bool, rules: Rules) -> Tuple[int, int, int]:
    """Apply the answer outcome.

    Returns ``(score_change, new_score, new_position)``. A correct answer
    earns points and keeps the player in the room; a wrong one costs points
    (score never drops below zero) and sends the player back, never past
    room 1.
    """
    if correct:
        return rules.correct_points, score + rules.correct_points, position
    new_position = max(1, position - rules.rooms_back)
    new_score = max(0, score - rules.wrong_penalty)
    return -rules.wrong_penalty, new_score, new_position


def next_turn_order(orders: Sequence[int], current: int) -> int:
    """Smallest turn order strictly greater than ``current``, wrapping to the lowest."""
    if not orders:
        raise ValueError('no players to pass the turn to')
    later = [o for o in orders if o > current]
    return min(later) if later else min(orders)
