"""
Daily Digest
============
One-line summary and rule-based advice written to the habit tracker.

Each metric family (sleep, steps, exercise minutes) contributes at most
one advice line, sleep first. When no rule fires the advice is a single
"everything looks good" line.
"""

from __future__ import annotations

from typing import Optional

from healthsync.models.scoring import DailyTotals, SleepRating

ADVICE_SLEEP_GOOD = "✅ 睡眠质量很好，请继续保持规律作息！"
ADVICE_SLEEP_FAIR = "⚠️ 睡眠质量一般，建议改善睡前习惯，避免使用电子设备。"
ADVICE_SLEEP_POOR = "❌ 睡眠质量较差，建议调整作息时间，创造更好的睡眠环境。"
ADVICE_STEPS_LOW = "⚠️ 步数较少，建议增加日常活动，多走路爬楼梯。"
ADVICE_STEPS_MET = "✅ 步数达标，继续保持活跃的生活方式！"
ADVICE_EXERCISE_LOW = "⚠️ 运动时间不足，建议每天至少进行30分钟中等强度运动。"
ADVICE_EXERCISE_OK = "✅ 运动时间充足，有助于身体健康！"
ADVICE_DEFAULT = "✅ 今日各项指标表现良好，请继续保持！"

STEPS_LOW_BELOW = 8000
STEPS_MET_FROM = 10000
EXERCISE_MINUTES_MIN = 30


def _fmt(value: float) -> str:
    """Drop a trailing .0 so 8000.0 reads as 8000."""
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def daily_summary(
    sleep_score: Optional[int],
    sleep_rating: SleepRating,
    totals: Optional[DailyTotals],
) -> str:
    parts = []
    if sleep_score is not None:
        parts.append(f"睡眠评分: {sleep_score}/100 ({sleep_rating.value})")
    else:
        parts.append("睡眠评分: 无数据")

    if totals is not None:
        parts.append(f"步数: {_fmt(totals.steps)}步")
        parts.append(f"运动时长: {_fmt(totals.exercise_minutes)}分钟")
        parts.append(f"消耗能量: {_fmt(totals.active_energy_kcal)}kcal")
    else:
        parts.append("运动数据: 无数据")

    return " | ".join(parts)


def daily_advice(sleep_score: Optional[int], totals: Optional[DailyTotals]) -> str:
    advice = []

    if sleep_score is not None:
        if sleep_score >= 80:
            advice.append(ADVICE_SLEEP_GOOD)
        elif sleep_score >= 60:
            advice.append(ADVICE_SLEEP_FAIR)
        else:
            advice.append(ADVICE_SLEEP_POOR)

    if totals is not None:
        if totals.steps < STEPS_LOW_BELOW:
            advice.append(ADVICE_STEPS_LOW)
        elif totals.steps >= STEPS_MET_FROM:
            advice.append(ADVICE_STEPS_MET)

        if totals.exercise_minutes < EXERCISE_MINUTES_MIN:
            advice.append(ADVICE_EXERCISE_LOW)
        else:
            advice.append(ADVICE_EXERCISE_OK)

    if not advice:
        advice.append(ADVICE_DEFAULT)

    return "\n".join(advice)
