from marketplace.views.auth_handlers import (
    admin_ping as admin_ping,
)
from marketplace.views.auth_handlers import (
    admin_status as admin_status,
)
from marketplace.views.auth_handlers import (
    current_session as current_session,
)
from marketplace.views.auth_handlers import (
    ensure_profile as ensure_profile,
)
from marketplace.views.auth_handlers import (
    get_profile as get_profile,
)
from marketplace.views.auth_handlers import (
    signin as signin,
)
from marketplace.views.auth_handlers import (
    signout as signout,
)
from marketplace.views.auth_handlers import (
    signup as signup,
)
from marketplace.views.auth_handlers import (
    update_profile as update_profile,
)
from marketplace.views.search_handlers import (
    get_preferences as get_preferences,
)
from marketplace.views.search_handlers import (
    search as search,
)
from marketplace.views.search_handlers import (
    search_state as search_state,
)
from marketplace.views.search_handlers import (
    suggestions as suggestions,
)
from marketplace.views.search_handlers import (
    update_filters as update_filters,
)
from marketplace.views.search_handlers import (
    update_preferences as update_preferences,
)
