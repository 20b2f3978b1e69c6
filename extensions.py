from flask_login import LoginManager

from api_client import OplpsApi
from badge import BadgePollers
from snapshots import SnapshotStore

# Extensions are created unbound and attached in create_app()

# Remote OPLPS REST API
oplps_api = OplpsApi()

# Authentication and session users
login_manager = LoginManager()

# Per-session local copies of the part views
snapshots = SnapshotStore()

# Sidebar notification badge pollers, one per login session
badge_pollers = BadgePollers()
