"""Election engine — workflow controller, ballot store, and tallying."""

from ballotbox.engine.ballot_store import BallotStore
from ballotbox.engine.notifier import Notifier
from ballotbox.engine.workflow import WorkflowController

__all__ = ["BallotStore", "Notifier", "WorkflowController"]
