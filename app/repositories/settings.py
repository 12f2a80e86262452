from typing import Any, Optional

from app.models.setting import Setting
from app.repositories.base import Repository


class SettingsRepository(Repository):
    model = Setting
    entity = "settings"

    def get_value(self, key: str) -> Optional[Any]:
        setting = self.first(Setting.key == key)
        return setting.value if setting else None
