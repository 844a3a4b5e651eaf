"""Exception taxonomy shared by the watch, scoring and notification layers.

Nothing in the core is fatal to the user. Each component catches these at
its boundary and answers with a documented fallback:

- TransientIOError: feed timeouts, non-success responses, storage failures.
  Retried on the next natural cycle, logged at warning level.
- DataAnomalyError: unparsable feed entries, malformed timestamps.
  Replaced by per-component defaults.
- InvariantViolationError: duplicate confirmations, score inputs missing
  required fields, illegal approval transitions. Indicates an upstream bug.
"""


class ChannelNotifierError(Exception):
    """Base exception for the channel notifier."""


class TransientIOError(ChannelNotifierError):
    """A transport or storage call failed and may succeed next cycle."""


class DataAnomalyError(ChannelNotifierError):
    """Input data is malformed or missing an expected field."""


class InvariantViolationError(ChannelNotifierError):
    """An internal invariant was broken by an upstream caller."""


class DuplicateWatchError(InvariantViolationError):
    """A WatchConfirmed arrived for an item already recorded for the source."""

    def __init__(self, source_id: str, item_id: str) -> None:
        super().__init__(f"Item {item_id!r} already recorded for source {source_id!r}")
        self.source_id = source_id
        self.item_id = item_id


class ScoreInputError(InvariantViolationError):
    """A source snapshot lacks a field the relationship score needs."""


class InvalidApprovalTransition(InvariantViolationError):
    """An approval state change is not allowed from the current state."""

    def __init__(self, source_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Source {source_id!r} cannot move from {current!r} to {target!r}"
        )
        self.source_id = source_id
        self.current = current
        self.target = target


class SourceNotFoundError(ChannelNotifierError):
    """The requested source does not exist in the store."""
