from app.models.user import User
from app.models.tool import Tool
from app.models.subscription import Subscription
from app.models.billing import BillingActive, BillingHistory
from app.models.setting import Setting
from app.models.cron_job_log import CronJobLog
from app.models.calendar_event import CalendarCategory, CalendarEvent

__all__ = [
    "User",
    "Tool",
    "Subscription",
    "BillingActive",
    "BillingHistory",
    "Setting",
    "CronJobLog",
    "CalendarCategory",
    "CalendarEvent",
]
