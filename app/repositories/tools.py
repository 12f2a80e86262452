from typing import Optional

from app.models.tool import Tool
from app.repositories.base import Repository


class ToolRepository(Repository):
    model = Tool
    entity = "tools"

    def get(self, tool_id: int) -> Optional[Tool]:
        return self.first(Tool.id == tool_id)
