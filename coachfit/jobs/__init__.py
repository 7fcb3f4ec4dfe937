"""
Refresh jobs for the CoachFit attention engine.

Entry points for an externally owned scheduler; the engine itself never
schedules work:

    from coachfit.jobs import run_attention_refresh, run_insight_refresh

    result = await run_attention_refresh()
    result = await run_insight_refresh()

Or from a shell:

    python -m coachfit.jobs.refresh_attention

See Also:
- coachfit/services/attention_queue.py: Queue computation and chunked refresh
- coachfit/services/insights.py: Anomaly detection and persistence
"""

from coachfit.jobs.refresh_attention import (
    run_attention_refresh,
    run_insight_refresh,
)

__all__ = [
    'run_attention_refresh',
    'run_insight_refresh',
]
