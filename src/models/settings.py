"""User settings model."""

from dataclasses import asdict, dataclass

from core.config import DEFAULT_USER_CONFIG


@dataclass(frozen=True, slots=True)
class UserConfig:
    """Sanitized user settings (see core.validation.sanitize_config)."""

    calendar_url: str = DEFAULT_USER_CONFIG["calendar_url"]
    goal_chats_per_hour: float = DEFAULT_USER_CONFIG["goal_chats_per_hour"]
    goal_tickets_per_hour: float = DEFAULT_USER_CONFIG["goal_tickets_per_hour"]
    pre_shift_warning_minutes: int = DEFAULT_USER_CONFIG["pre_shift_warning_minutes"]
    show_shift_reminders: bool = DEFAULT_USER_CONFIG["show_shift_reminders"]
    week_starts_on: str = DEFAULT_USER_CONFIG["week_starts_on"]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Goals:
    """Per-hour goals for both queues."""

    chats_per_hour: float = DEFAULT_USER_CONFIG["goal_chats_per_hour"]
    tickets_per_hour: float = DEFAULT_USER_CONFIG["goal_tickets_per_hour"]

    @classmethod
    def from_config(cls, config: UserConfig) -> "Goals":
        return cls(
            chats_per_hour=config.goal_chats_per_hour,
            tickets_per_hour=config.goal_tickets_per_hour,
        )
