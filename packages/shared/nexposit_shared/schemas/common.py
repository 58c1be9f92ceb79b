from enum import Enum
from uuid import UUID
from pydantic import BaseModel

class Role(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"

class PostStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"

class TimeSlot(str, Enum):
    MORNING = "morning"
    NOON = "noon"
    EVENING = "evening"

# Approved is terminal: nothing leads back to pending.
POST_TRANSITIONS: dict["PostStatus", list["PostStatus"]] = {
    PostStatus.PENDING: [PostStatus.APPROVED],
    PostStatus.APPROVED: [],
}

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100
TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DEFAULT_PROJECT_COLOR = "#3B82F6"
HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

class UserSummary(BaseModel):
    id: UUID
    email: str
    full_name: str

    model_config = {"from_attributes": True}
