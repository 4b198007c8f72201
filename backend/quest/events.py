"""
Realtime events pushed to the clients of a game.
One dataclass per Socket.IO event name; payload shape is fixed per variant.
"""

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


@dataclass(frozen=True)
class RealtimeEvent:
    """Base event. ``game_id`` selects the room, ``user_id`` is the actor."""
    name: ClassVar[str] = ''

    game_id: int
    user_id: Optional[int]

    @property
    def message(self) -> str:
        return ''

    def to_payload(self) -> dict[str, Any]:
        payload = {_camel(f.name): getattr(self, f.name) for f in fields(self)}
        payload['message'] = self.message
        payload['timestamp'] = datetime.now(timezone.utc).isoformat()
        return payload


# ===== Presence =====

@dataclass(frozen=True)
class PlayerJoined(RealtimeEvent):
    name: ClassVar[str] = 'player-joined'
    username: str
    turn_order: int

    @property
    def message(self) -> str:
        return f"{self.username} joined the quest"


@dataclass(frozen=True)
class PlayerLeft(RealtimeEvent):
    name: ClassVar[str] = 'player-left'
    username: str

    @property
    def message(self) -> str:
        return f"{self.username} left the quest"


@dataclass(frozen=True)
class PlayerDisconnected(RealtimeEvent):
    name: ClassVar[str] = 'player-disconnected'
    username: str

    @property
    def message(self) -> str:
        return f"{self.username} disconnected"


@dataclass(frozen=True)
class RoomInfo(RealtimeEvent):
    name: ClassVar[str] = 'room-info'
    player_count: int

    @property
    def message(self) -> str:
        return 'You joined the quest'


@dataclass(frozen=True)
class PlayerListChanged(RealtimeEvent):
    """Someone connected to or dropped off the game page; clients refetch seats."""
    name: ClassVar[str] = 'update-player-list'
    player_count: int

    @property
    def message(self) -> str:
        return 'Player list changed'


@dataclass(frozen=True)
class ReturnedToDashboard(RealtimeEvent):
    name: ClassVar[str] = 'player-returned-dashboard'
    username: str

    @property
    def message(self) -> str:
        return f"{self.username} returned to dashboard"


# ===== Lobby =====

@dataclass(frozen=True)
class GameStarted(RealtimeEvent):
    name: ClassVar[str] = 'game-started'
    current_turn_user_id: int
    total_players: int

    @property
    def message(self) -> str:
        return 'Quest is starting! Prepare for adventure!'


@dataclass(frozen=True)
class GameDeleted(RealtimeEvent):
    name: ClassVar[str] = 'game-deleted'

    @property
    def message(self) -> str:
        return 'This quest has been deleted by the creator'


# ===== Turns =====

@dataclass(frozen=True)
class PlayerMoved(RealtimeEvent):
    name: ClassVar[str] = 'player-moved'
    username: str
    dice_roll: int
    from_position: int
    to_position: int

    @property
    def message(self) -> str:
        return f"{self.username} rolled {self.dice_roll} and moved to room {self.to_position}"


@dataclass(frozen=True)
class QRScanned(RealtimeEvent):
    name: ClassVar[str] = 'qr-scan-event'
    qr_code: str
    question_id: int

    @property
    def message(self) -> str:
        return f"Player scanned QR code: {self.qr_code}"


@dataclass(frozen=True)
class AnswerSubmitted(RealtimeEvent):
    name: ClassVar[str] = 'answer-submitted'
    username: str
    question_id: int
    is_correct: bool
    score_change: int
    new_score: int
    new_position: int

    @property
    def message(self) -> str:
        verdict = 'correctly' if self.is_correct else 'incorrectly'
        return f"{self.username} answered {verdict}"


@dataclass(frozen=True)
class TurnChanged(RealtimeEvent):
    name: ClassVar[str] = 'turn-changed'
    current_turn_user_id: int
    current_turn_username: str

    @property
    def message(self) -> str:
        return f"It's {self.current_turn_username}'s turn!"


@dataclass(frozen=True)
class GameWinner(RealtimeEvent):
    name: ClassVar[str] = 'game-winner'
    winner_name: str
    final_position: int

    @property
    def message(self) -> str:
        return f"{self.winner_name} has won the quest!"


@dataclass(frozen=True)
class WinnerStatsRequested(RealtimeEvent):
    name: ClassVar[str] = 'show-winner-modal'

    @property
    def message(self) -> str:
        return 'Loading game results...'


EVENT_TYPES = (
    PlayerJoined,
    PlayerLeft,
    PlayerDisconnected,
    RoomInfo,
    PlayerListChanged,
    ReturnedToDashboard,
    GameStarted,
    GameDeleted,
    PlayerMoved,
    QRScanned,
    AnswerSubmitted,
    TurnChanged,
    GameWinner,
    WinnerStatsRequested,
)
