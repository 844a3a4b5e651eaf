"""Skip detection and continuous-progress accounting.

Pure functions of ``(session, sample) -> session'``. Each sample is
compared with the previous one:

- forward skip: position ran ahead of wall time by more than the slack
  and by more than the minimum skip. Marks the session skipped and moves
  the continuity watermark to the new position.
- rewind: position went back by more than the rewind threshold. Moves
  the watermark and clears the skip flag.
- paused: no accrual. Jumps are classified before the paused check, so
  scrubbing a paused player is still a skip or a rewind.
- normal: accrues watched seconds and, unless skipped, raises the
  highest continuous progress.
"""

from dataclasses import replace

from channel_notifier.watch.config import WatchConfig
from channel_notifier.watch.schemas import Sample, SessionState, TickKind, WatchSession


def classify(advance: float, elapsed: float, config: WatchConfig) -> TickKind:
    """Classify a position change over ``elapsed`` wall seconds."""
    if advance > elapsed + config.skip_slack_seconds and advance > config.min_skip_seconds:
        return TickKind.FORWARD_SKIP
    if advance < -config.rewind_seconds:
        return TickKind.REWIND
    return TickKind.NORMAL


def rebaseline(session: WatchSession, sample: Sample) -> WatchSession:
    """Reset the comparison point without classifying the change."""
    return replace(
        session,
        last_position=sample.position,
        last_sample_at=sample.at,
        duration=sample.duration,
    )


def apply_sample(
    session: WatchSession, sample: Sample, config: WatchConfig
) -> tuple[WatchSession, TickKind]:
    """Fold one sample into the session."""
    if session.last_position is None or session.last_sample_at is None:
        return (
            replace(
                rebaseline(session, sample),
                continuous_start=sample.position,
            ),
            TickKind.BASELINE,
        )

    advance = sample.position - session.last_position
    elapsed = max(0.0, sample.at - session.last_sample_at)
    kind = classify(advance, elapsed, config)
    updated = rebaseline(session, sample)

    if kind == TickKind.FORWARD_SKIP:
        return replace(updated, skip_detected=True, continuous_start=sample.position), kind

    if kind == TickKind.REWIND:
        return replace(updated, skip_detected=False, continuous_start=sample.position), kind

    if sample.paused:
        return updated, TickKind.PAUSED

    accumulated = session.accumulated_seconds + max(0.0, min(advance, elapsed))
    highest = session.highest_continuous_progress
    if not session.skip_detected:
        continuous = (sample.position - session.continuous_start) / sample.duration
        highest = max(highest, min(1.0, continuous))
    return (
        replace(updated, accumulated_seconds=accumulated, highest_continuous_progress=highest),
        kind,
    )


def resume_sample(
    session: WatchSession, sample: Sample, config: WatchConfig, played_while_away: bool
) -> tuple[WatchSession, TickKind]:
    """Re-baseline after sampling was suspended.

    Time spent away is never credited. A paused player does not move on
    its own, so a forward jump beyond the minimum skip is a scrub and
    marks the session skipped. If the player kept playing while away, the
    watermark moves along with the position instead.
    """
    if session.last_position is None or session.last_sample_at is None:
        return apply_sample(session, sample, config)

    advance = sample.position - session.last_position
    updated = rebaseline(session, sample)

    if advance < -config.rewind_seconds:
        return (
            replace(updated, skip_detected=False, continuous_start=sample.position),
            TickKind.REWIND,
        )

    if played_while_away:
        shifted = session.continuous_start + max(0.0, advance)
        return replace(updated, continuous_start=shifted), TickKind.BASELINE

    if advance > config.min_skip_seconds:
        return (
            replace(updated, skip_detected=True, continuous_start=sample.position),
            TickKind.FORWARD_SKIP,
        )

    return updated, TickKind.BASELINE


def meets_threshold(session: WatchSession, config: WatchConfig) -> bool:
    """Whether the session qualifies as a genuine watch."""
    return (
        session.state == SessionState.SAMPLING
        and not session.skip_detected
        and session.highest_continuous_progress >= config.watch_threshold
        and session.accumulated_seconds >= config.min_watch_seconds
    )
