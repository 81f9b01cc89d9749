from .role import Role  # noqa: F401
from .user import User, user_roles  # noqa: F401
from .cell import Cell  # noqa: F401
from .member import Member  # noqa: F401
from .member_audit import MemberAudit  # noqa: F401
from .ministry import Ministry, MemberMinistry  # noqa: F401
from .event import Event, EventRegistration, EventAttendance  # noqa: F401
from .contribution import Contribution  # noqa: F401
from .announcement import Announcement  # noqa: F401
