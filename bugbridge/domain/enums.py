from enum import Enum


class FilterBucket(str, Enum):
    feedback = "feedback"
    task_board = "taskBoard"
    archive = "archive"


class Priority(int, Enum):
    # Tracker priority ids
    not_set = 0
    critical = 1
    important = 2
    normal = 3
    minor = 4

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")


class SpreadsheetFormat(str, Enum):
    csv = ".csv"
    xlsx = ".xlsx"
    xls = ".xls"
