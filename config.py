import os

_API_BASE = os.getenv('OPLPS_API_BASE', 'http://localhost/oplps_api/api').rstrip('/')


def _endpoint(env_name, filename):
    return os.getenv(env_name, f"{_API_BASE}/{filename}")


def _float_or_none(value):
    try:
        return float(value) if value else None
    except ValueError:
        return None


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev_secret_key')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # remote OPLPS API
    OPLPS_API_BASE = _API_BASE
    OPLPS_API_TIMEOUT = _float_or_none(os.getenv('OPLPS_API_TIMEOUT'))
    PARTS_API_URL = _endpoint('PARTS_API_URL', 'part.php')
    ISSUE_API_URL = _endpoint('ISSUE_API_URL', 'issue_out.php')
    DAMAGE_API_URL = _endpoint('DAMAGE_API_URL', 'damage.php')
    HISTORY_API_URL = _endpoint('HISTORY_API_URL', 'history.php')
    TYPES_API_URL = _endpoint('TYPES_API_URL', 'types.php')
    STATUS_API_URL = _endpoint('STATUS_API_URL', 'status.php')
    DASHBOARD_API_URL = _endpoint('DASHBOARD_API_URL', 'dashboard.php')
    LOGIN_API_URL = _endpoint('LOGIN_API_URL', 'login.php')
    USER_MANAGEMENT_API_URL = _endpoint('USER_MANAGEMENT_API_URL', 'user_management.php')
    ROLES_API_URL = _endpoint('ROLES_API_URL', 'get_roles.php')
    ADD_USER_API_URL = _endpoint('ADD_USER_API_URL', 'add_user.php')
    GET_PROFILE_API_URL = _endpoint('GET_PROFILE_API_URL', 'get_profile.php')
    UPDATE_PROFILE_API_URL = _endpoint('UPDATE_PROFILE_API_URL', 'update_profile.php')
    CHANGE_PASSWORD_API_URL = _endpoint('CHANGE_PASSWORD_API_URL', 'change_password.php')

    # sidebar badge
    BADGE_POLL_ENABLED = os.getenv('BADGE_POLL_ENABLED', '1') not in ('0', 'false', 'False')
    BADGE_POLL_INTERVAL = float(os.getenv('BADGE_POLL_INTERVAL', '60'))

    # per-login state (snapshots, badge poller) is dropped after this many idle seconds
    SESSION_IDLE_TTL = float(os.getenv('SESSION_IDLE_TTL', '3600'))
