from hostpanel.db.base_class import Base
from hostpanel.models.user import User
from hostpanel.models.domain import Domain
from hostpanel.models.file import File
from hostpanel.models.website import Website
from hostpanel.models.analytics import AnalyticsEvent
from hostpanel.models.session import UserSession
from hostpanel.models.api_key import ApiKey
