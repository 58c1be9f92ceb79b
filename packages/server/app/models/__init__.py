# SQLModel definitions, imported here so Alembic sees the full metadata.
from .base import UUIDMixin, CreatedAtMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .context import Context  # noqa: F401
from .context_membership import ContextMembership  # noqa: F401
from .project import Project  # noqa: F401
from .project_membership import ProjectMembership  # noqa: F401
from .post import Post  # noqa: F401
