from typing import List, Optional, Tuple

from app.models.cron_job_log import CronJobLog
from app.repositories.base import Repository


class CronJobLogRepository(Repository):
    model = CronJobLog
    entity = "cron_job_logs"

    def page(
        self,
        job_name: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[CronJobLog], int]:
        criteria = []
        if job_name:
            criteria.append(CronJobLog.job_name == job_name)
        if status:
            criteria.append(CronJobLog.status == status)
        total = self.count(*criteria)
        rows = self.find(*criteria, order_by=CronJobLog.started_at.desc(), limit=limit, offset=offset)
        return rows, total
