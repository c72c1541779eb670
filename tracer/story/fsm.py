"""Story status lifecycle using the transitions library.

Usage:
    from tracer.story.fsm import StoryLifecycle

    lifecycle = StoryLifecycle(story)
    lifecycle.apply("start")   # open -> in_progress
    lifecycle.apply("close")   # in_progress -> closed
    store.save(story)

The lifecycle mutates the Story in memory only; persisting is the caller's job.
"""

import logging

from transitions import Machine, MachineError

from tracer.lib.errors import ValidationError
from tracer.story.models import Story

logger = logging.getLogger(__name__)


STATUS_OPEN = "open"
STATUS_IN_PROGRESS = "in_progress"
STATUS_CLOSED = "closed"

STATES = [STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_CLOSED]

TRANSITIONS = [
    {"trigger": "start", "source": STATUS_OPEN, "dest": STATUS_IN_PROGRESS},
    {"trigger": "close", "source": STATUS_OPEN, "dest": STATUS_CLOSED},
    {"trigger": "close", "source": STATUS_IN_PROGRESS, "dest": STATUS_CLOSED},
    {"trigger": "reopen", "source": STATUS_CLOSED, "dest": STATUS_OPEN},
]

TRIGGERS = sorted({t["trigger"] for t in TRANSITIONS})


class StoryLifecycle:
    """State machine over Story.status.

    Each transition writes the new status back to the story and advances
    updated_at.
    """

    def __init__(self, story: Story):
        self.story = story

        initial = story.status
        if initial not in STATES:
            logger.warning(f"[FSM] {story.id}: Unknown status '{initial}', defaulting to 'open'")
            initial = STATUS_OPEN

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        logger.info(f"[FSM] {self.story.id}: {from_state} -> {to_state} ({event.event.name})")
        self.story.status = to_state
        self.story.touch()

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def apply(self, trigger: str) -> str:
        """Fire `trigger` and return the new status.

        Raises:
            ValidationError: for an unknown trigger or one not allowed from
                the current status.
        """
        if trigger not in TRIGGERS:
            raise ValidationError(f"unknown story transition '{trigger}'. Must be one of: {', '.join(TRIGGERS)}")
        try:
            self.trigger(trigger)
        except MachineError:
            raise ValidationError(
                f"cannot {trigger} story {self.story.id} from status '{self.state}'"
            ) from None
        return self.state
