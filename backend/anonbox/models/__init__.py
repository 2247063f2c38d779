from anonbox.models.base import Base  # noqa: F401
from anonbox.models.user import User  # noqa: F401
from anonbox.models.message import Message  # noqa: F401
from anonbox.models.block import BlockEntry  # noqa: F401
from anonbox.models.report import Report  # noqa: F401
