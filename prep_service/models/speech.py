from __future__ import annotations

from dataclasses import dataclass

DEFAULT_WPM = 120

DEFAULT_FEEDBACK = (
    "Unable to analyze the response. Please try again with a longer answer."
)


@dataclass(frozen=True, slots=True)
class SpeechAnalysis:
    fluency_score: int
    grammar_score: int
    confidence_score: int
    filler_count: int
    words_per_minute: int
    feedback: str

    @staticmethod
    def fallback() -> SpeechAnalysis:
        """Payload used whenever the analysis reply can't be trusted."""
        return SpeechAnalysis(
            fluency_score=50,
            grammar_score=50,
            confidence_score=50,
            filler_count=0,
            words_per_minute=DEFAULT_WPM,
            feedback=DEFAULT_FEEDBACK,
        )
