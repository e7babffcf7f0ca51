from .health import health_bp
from .auth import auth_bp
from .dates import dates_bp
from .public import public_bp
from .bookings import bookings_bp
from .lessons import lessons_bp
from .teachers import teachers_bp
from .students import students_bp
from .stats import stats_bp

ALL_BLUEPRINTS = (
    health_bp,
    auth_bp,
    dates_bp,
    public_bp,
    bookings_bp,
    lessons_bp,
    teachers_bp,
    students_bp,
    stats_bp,
)
