from __future__ import annotations

from .models import ConditionCategory

DEFAULT_CONDITION = ConditionCategory.PARTLY_CLOUDY_DAY

# "clear" is handled in condition_category(), where it splits on daylight.
CONDITION_TABLE: dict[str, ConditionCategory] = {
    "clouds": ConditionCategory.CLOUDY,
    "rain": ConditionCategory.RAIN,
    "snow": ConditionCategory.SNOW,
    "thunderstorm": ConditionCategory.RAIN,
    "drizzle": ConditionCategory.SLEET,
    "mist": ConditionCategory.FOG,
    "smoke": ConditionCategory.FOG,
    "haze": ConditionCategory.FOG,
    "fog": ConditionCategory.FOG,
}


def is_daytime(observed_at: int | float, sunrise: int | float | None, sunset: int | float | None) -> bool:
    if sunrise is None or sunset is None:
        return False
    return sunrise < observed_at < sunset


def condition_category(keyword: str | None, *, is_day: bool = True) -> ConditionCategory:
    normalized = (keyword or "").strip().lower()
    if normalized == "clear":
        return ConditionCategory.CLEAR_DAY if is_day else ConditionCategory.CLEAR_NIGHT
    return CONDITION_TABLE.get(normalized, DEFAULT_CONDITION)


ICON_NAMES: dict[ConditionCategory, str] = {
    category: category.value.upper().replace("-", "_") for category in ConditionCategory
}


def icon_name(category: ConditionCategory | None) -> str:
    if category is None:
        return ICON_NAMES[ConditionCategory.CLEAR_DAY]
    return ICON_NAMES.get(category, ICON_NAMES[DEFAULT_CONDITION])
