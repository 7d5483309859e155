# Base.metadata 에 모든 테이블을 등록하기 위한 import 모음
from app.models.user import User, RegionGroup  # noqa: F401
from app.models.authority import AuthorityCategory, Authority, UserAuthority  # noqa: F401
from app.models.team import Team, TeamMember, TeamRole  # noqa: F401
from app.models.notice import (  # noqa: F401
    Notice,
    NoticeComment,
    NoticeCommentLike,
    NoticeImage,
    NoticeLike,
)
from app.models.testimony import (  # noqa: F401
    Testimony,
    TestimonyCategory,
    TestimonyComment,
    TestimonyCommentLike,
    TestimonyImage,
    TestimonyLike,
)
from app.models.event import Event  # noqa: F401
from app.models.notification import Notification, NotificationType  # noqa: F401
from app.models.training import TrainingRecord, TrainingType  # noqa: F401
from app.models.academic import AcademicYear, VisionCampBatch  # noqa: F401
