"""Calendar persistence: load at startup, save after every committed change."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from mealplan.meal_calendar import Meal, MealCalendar

logger = logging.getLogger(__name__)


class CalendarStoreError(Exception):
    """Raised when the meal calendar cannot be loaded or saved."""
    pass


def calendar_to_dict(calendar: MealCalendar) -> dict[str, Any]:
    return {
        "days": {
            day.isoformat(): [meal.to_dict() for meal in calendar.meals(day)]
            for day in calendar.days
        }
    }


def calendar_from_dict(data: dict[str, Any]) -> MealCalendar:
    if "days" not in data:
        raise CalendarStoreError("Calendar file must contain a 'days' key")

    calendar = MealCalendar()
    try:
        for meals in data["days"].values():
            for meal_data in meals:
                calendar.add_meal(Meal.from_dict(meal_data))
    except (KeyError, TypeError, ValueError) as e:
        raise CalendarStoreError(f"Invalid meal in calendar data: {e}") from e
    return calendar


class CalendarStore(ABC):
    @abstractmethod
    def load(self) -> MealCalendar:
        ...

    @abstractmethod
    def save(self, calendar: MealCalendar) -> None:
        ...


class InMemoryCalendarStore(CalendarStore):
    """Keeps the last saved snapshot in memory (tests, throwaway sessions)."""

    def __init__(self):
        self._snapshot: dict[str, Any] | None = None
        self.save_count = 0

    def load(self) -> MealCalendar:
        if self._snapshot is None:
            return MealCalendar()
        return calendar_from_dict(self._snapshot)

    def save(self, calendar: MealCalendar) -> None:
        self._snapshot = calendar_to_dict(calendar)
        self.save_count += 1


class JsonCalendarStore(CalendarStore):
    def __init__(self, file_path: Path | str):
        self.file_path = Path(file_path)

    def load(self) -> MealCalendar:
        """Read the calendar file. A missing file is an empty calendar."""
        if not self.file_path.exists():
            logger.info("No calendar file yet, starting empty", extra={"path": str(self.file_path)})
            return MealCalendar()

        try:
            with open(self.file_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CalendarStoreError(f"Invalid JSON in calendar file: {e}") from e
        except OSError as e:
            raise CalendarStoreError(f"Failed to read calendar from {self.file_path}: {e}") from e

        calendar = calendar_from_dict(data)
        logger.info("Calendar loaded", extra={"path": str(self.file_path), "meals": len(calendar)})
        return calendar

    def save(self, calendar: MealCalendar) -> None:
        """Write the calendar with an atomic replace.

        Raises:
            CalendarStoreError: If the file cannot be written
        """
        data = calendar_to_dict(calendar)

        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=self.file_path.parent,
                prefix=".calendar_tmp_",
                suffix=".json"
            )

            try:
                with os.fdopen(temp_fd, 'w') as f:
                    json.dump(data, f, indent=2)
                os.replace(temp_path, self.file_path)
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise

        except OSError as e:
            raise CalendarStoreError(f"Failed to save calendar to {self.file_path}: {e}") from e

        logger.debug("Calendar saved", extra={"path": str(self.file_path), "meals": len(calendar)})
