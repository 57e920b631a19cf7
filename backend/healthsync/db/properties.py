"""
Notion Property Codec
=====================
Property names of the four target databases, plus helpers that encode
Python values into Notion property payloads and read them back.

Encoders return ``None`` for a ``None`` value so a patch can be built
in one dict literal and passed through :func:`sparse_patch`, which drops
every key that has nothing to say. Partial updates therefore never
blank out a field the payload did not mention.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Union

FieldPatch = dict[str, dict[str, Any]]

# ---------------------------------------------------------------------------
# Shared property names
# ---------------------------------------------------------------------------

TITLE_PROPERTY = "名称"
DATE_PROPERTY = "Date"

# ---------------------------------------------------------------------------
# Per-database property names
# ---------------------------------------------------------------------------

HEALTH_PROPS = {
    "device": "Device",
    "height_cm": "身高(cm)",
    "weight_kg": "体重(kg)",
    "steps": "步数(步)",
    "distance_km": "步行跑步距离(km)",
    "active_energy_kcal": "活动能量(kcal)",
    "exercise_minutes": "锻炼分钟数(分钟)",
    "stand_hours": "站立分钟数",
    "sleep_hours": "睡眠时长(小时)",
    "deep_sleep_min": "深度睡眠(分钟)",
    "rem_sleep_min": "REM睡眠(分钟)",
    "core_sleep_min": "核心睡眠(分钟)",
    "awake_min": "清醒时间(分钟)",
    "actual_sleep_hours": "实际睡眠时长(小时)",
    "sleep_score": "睡眠评分(100分制)",
    "sleep_rating": "睡眠质量评级",
    "deep_ratio": "深度睡眠占比(%)",
    "rem_ratio": "REM睡眠占比(%)",
    "awake_ratio": "清醒时间占比(%)",
    "efficiency": "睡眠效率(%)",
    "resting_hr": "静息心率(bpm)",
    "max_hr": "最大心率(bpm)",
    "hrv_ms": "心率变异性(ms)",
    "respiratory_rate": "呼吸频率(次/分钟)",
    "blood_oxygen": "血氧饱和度(%)",
    "avg_walking_speed": "平均步行速度(km/h)",
    "avg_running_speed": "平均跑步速度(km/h)",
    "walking_steadiness": "步行稳定性(%)",
    "cycling_distance": "骑行距离(km)",
    # Training summary written after a workout batch
    "workout_count": "今日训练次数",
    "workout_minutes": "今日训练总时长(分钟)",
    "workout_steps": "今日训练总步数",
    "workout_energy": "今日训练总能量(kcal)",
    "goal_status": "达标状态",
}

GOAL_PROPS = {
    "steps": "步数目标达成",
    "exercise_minutes": "运动时长目标达成",
    "active_energy": "活动能量目标达成",
    "workout_count": "训练次数目标达成",
    "all": "今日运动是否达标",
}

HABIT_PROPS = {
    "sleep_score": "睡眠评分(100分制)",
    "sleep_rating": "睡眠质量评级",
    "exercise_status": "运动是否达标",
    "steps": "步数",
    "exercise_minutes": "运动时长(分钟)",
    "active_energy_kcal": "消耗能量(kcal)",
    "summary": "当日总结",
    "advice": "健康建议",
}

SLEEP_PROPS = {
    "start": "开始时间",
    "end": "结束时间",
    "total_hours": "总睡眠时长(小时)",
    "deep_hours": "深睡时长(小时)",
    "core_hours": "浅睡时长(小时)",
    "rem_hours": "REM时长(小时)",
    "awake_hours": "清醒时长(小时)",
    "score": "睡眠评分",
    "rating": "睡眠质量评级",
    "source": "数据源",
}

WORKOUT_PROPS = {
    "date": "日期",
    "type": "运动类型",
    "location": "位置",
    "duration_min": "持续时间(分钟)",
    "steps": "步数",
    "active_energy_kcal": "活动能量(kcal)",
    "temperature_c": "温度(°C)",
    "humidity_pct": "湿度(%)",
    "avg_hr": "平均心率(次/分)",
    "max_hr": "最大心率(次/分)",
    "min_hr": "最小心率(次/分)",
    "intensity": "强度(kcal/hr·kg)",
    "workout_id": "Workout ID",
    "distance_km": "距离(公里)",
    "pace": "平均配速(分:秒/公里)",
    "health_record": "健康记录",
}


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------

def title(text: Optional[str]) -> Optional[dict]:
    if text is None:
        return None
    return {"title": [{"text": {"content": text}}]}


def rich_text(text: Optional[str]) -> Optional[dict]:
    if text is None:
        return None
    if text == "":
        return {"rich_text": []}
    return {"rich_text": [{"text": {"content": text}}]}


def number(value: Optional[Union[int, float]]) -> Optional[dict]:
    if value is None:
        return None
    return {"number": value}


def checkbox(value: Optional[bool]) -> Optional[dict]:
    if value is None:
        return None
    return {"checkbox": bool(value)}


def date_value(value: Optional[Union[date, datetime, str]]) -> Optional[dict]:
    if value is None:
        return None
    start = value if isinstance(value, str) else value.isoformat()
    return {"date": {"start": start}}


def select(name: Optional[str]) -> Optional[dict]:
    if name is None:
        return None
    return {"select": {"name": name}}


def relation(page_ids: Iterable[str]) -> dict:
    return {"relation": [{"id": page_id} for page_id in page_ids]}


def sparse_patch(fields: Mapping[str, Optional[dict]]) -> FieldPatch:
    """Drop every key whose encoded value is ``None``."""
    return {name: value for name, value in fields.items() if value is not None}


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------

def read_number(properties: Mapping[str, Any], name: str) -> Optional[float]:
    prop = properties.get(name) or {}
    return prop.get("number")


def read_text(properties: Mapping[str, Any], name: str) -> Optional[str]:
    """Concatenate the plain text of a rich_text or title property."""
    prop = properties.get(name) or {}
    items = prop.get("rich_text")
    if items is None:
        items = prop.get("title")
    if not items:
        return None
    parts = []
    for item in items:
        if "plain_text" in item:
            parts.append(item["plain_text"])
        else:
            parts.append((item.get("text") or {}).get("content", ""))
    return "".join(parts)


def read_relation_ids(properties: Mapping[str, Any], name: str) -> list[str]:
    prop = properties.get(name) or {}
    return [item["id"] for item in prop.get("relation") or []]
