"""LLM-backed mood features: recommendations, advanced insights, best/challenging day.

Each workflow instance serves one request kind. The mood data is read fresh
from the journal on every run so a retry sees entries saved in between.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from healthcare_pro.services import analytics, prompts, shapes
from healthcare_pro.services.mood_journal import MoodJournal
from healthcare_pro.services.response_parser import parse
from healthcare_pro.services.workflows.base import Workflow, WorkflowState as S
from healthcare_pro.utils.exceptions import ApiError, ContentRefusedError, ParseError, ValidationError

logger = logging.getLogger("healthcare_pro")

RECOMMENDATIONS = "recommendations"
INSIGHTS = "insights"
BEST_DAY = "best_day"

# request kind -> (temperature, max tokens, shape)
REQUESTS = {
    RECOMMENDATIONS: (0.4, 1500, shapes.MOOD_RECOMMENDATIONS),
    INSIGHTS: (0.3, 2000, shapes.MOOD_INSIGHTS),
    BEST_DAY: (0.2, 512, shapes.BEST_DAY),
}

TIMEFRAMES = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}

GENERIC_ERRORS = {
    RECOMMENDATIONS: "Failed to generate mood recommendations. Please try again.",
    INSIGHTS: "Failed to generate advanced mood insights. Please try again.",
    BEST_DAY: "Could not determine your best and most challenging days. Please try again.",
}


def recommendation_input(stats: Dict[str, Any], recent: List[Dict[str, Any]]) -> prompts.MoodRecommendationInput:
    return prompts.MoodRecommendationInput(
        average_mood=stats.get("average") or 3,
        mood_trend=stats.get("trend") or "neutral",
        total_entries=stats.get("total") or 0,
        common_emotions=tuple(stats.get("emotions") or ()),
        common_activities=tuple(stats.get("activities") or ()),
        recent7_average=stats.get("recent7_average") or 3,
        previous7_average=stats.get("previous7_average") or 3,
        recent_entries=tuple(recent),
    )


def insights_input(entries: List[Dict[str, Any]], timeframe: str) -> prompts.MoodInsightsInput:
    summary = analytics.summarize(entries, timeframe)
    return prompts.MoodInsightsInput(
        avg_mood=summary["avg_mood"],
        total_entries=summary["total_entries"],
        mood_distribution=summary["mood_distribution"],
        top_tags=tuple(summary["top_tags"][:5]),
        top_emotions=tuple(summary["top_emotions"]),
        weekday_avgs=tuple(summary["weekday_avgs"]),
        hourly_avgs=tuple(summary["hourly_avgs"]),
        entries=tuple(analytics.chronological(entries)),
        timeframe=timeframe,
    )


def best_day_input(entries: List[Dict[str, Any]]) -> prompts.BestDayInput:
    return prompts.BestDayInput(entries=tuple(
        {"date": e.get("date"), "mood": e.get("mood"), "emoji": e.get("emoji") or "", "notes": e.get("notes") or ""}
        for e in analytics.chronological(entries)
    ))


def _failure_message(exc: Exception, request: str) -> str:
    if isinstance(exc, (ApiError, ContentRefusedError)):
        return exc.message
    if isinstance(exc, ParseError) and exc.stage == "validate":
        return exc.message
    return GENERIC_ERRORS[request]


class MoodInsightWorkflow(Workflow):
    kind = "mood_insight"
    transitions = {
        S.INITIAL: frozenset({S.ANALYZING}),
        S.ANALYZING: frozenset({S.COMPLETE, S.ERROR}),
        S.ERROR: frozenset({S.ANALYZING}),
        S.COMPLETE: frozenset(),
    }

    def __init__(self, user_id: str, request: str, timeframe: str = "30d"):
        if request not in REQUESTS:
            raise ValidationError("Unknown mood insight request", {"allowed": sorted(REQUESTS)})
        if timeframe not in TIMEFRAMES:
            raise ValidationError("Unknown timeframe", {"allowed": list(TIMEFRAMES)})
        super().__init__(user_id)
        self.request = request
        self.timeframe = timeframe
        self.result: Optional[Dict[str, Any]] = None
        self.entry_count = 0
        self.today: Optional[date] = None

    def _build_prompt(self, journal: MoodJournal, today: Optional[date]) -> str:
        if self.request == RECOMMENDATIONS:
            stats = journal.stats(today=today)
            recent = journal.list(limit=5)
            return prompts.build_mood_recommendation_prompt(recommendation_input(stats, recent))

        entries = journal.recent(TIMEFRAMES[self.timeframe], today)
        self.entry_count = len(entries)
        if not entries:
            raise ValidationError("No mood entries provided for analysis.")
        if self.request == INSIGHTS:
            return prompts.build_mood_insights_prompt(insights_input(entries, self.timeframe))
        return prompts.build_best_day_prompt(best_day_input(entries))

    async def run(self, llm, journal: MoodJournal, today: Optional[date] = None) -> "MoodInsightWorkflow":
        self.require(S.INITIAL, S.ERROR, action="run")
        if today is not None:
            self.today = today
        # Empty journal is rejected before the state moves and before any LLM call
        prompt = self._build_prompt(journal, self.today)

        self.transition(S.ANALYZING)
        self.clear_error()
        temperature, max_tokens, shape = REQUESTS[self.request]
        try:
            raw = await llm.complete(prompt, temperature=temperature, max_tokens=max_tokens)
            self.result = parse(raw, shape)
        except (ApiError, ParseError, ContentRefusedError) as exc:
            logger.warning({"workflow": self.kind, "request": self.request, "id": self.id, "error": str(exc)})
            self.fail(_failure_message(exc, self.request), step="run")
            return self
        self.transition(S.COMPLETE)
        return self

    async def retry(self, llm, journal: MoodJournal, today: Optional[date] = None) -> "MoodInsightWorkflow":
        self.require(S.ERROR, action="retry")
        return await self.run(llm, journal, today)

    def snapshot(self) -> Dict[str, Any]:
        out = super().snapshot()
        out.update({"request": self.request, "timeframe": self.timeframe, "result": self.result})
        return out
