"""
Send Module

The send-attempt state machine: global throttle coordination, conversation
resolution, the bounded retry loop, outcome recording and delayed redelivery.
"""

from notify_send.sender.conversation import ConversationResolver
from notify_send.sender.orchestrator import DispatchOrchestrator
from notify_send.sender.outcome import OutcomeRecorder
from notify_send.sender.retry_scheduler import RetryScheduler
from notify_send.sender.send_loop import Delivered
from notify_send.sender.send_loop import Failed
from notify_send.sender.send_loop import SendAttemptLoop
from notify_send.sender.send_loop import SendOutcome
from notify_send.sender.send_loop import Throttled
from notify_send.sender.throttle import ThrottleCoordinator

__all__ = [
    "ConversationResolver",
    "Delivered",
    "DispatchOrchestrator",
    "Failed",
    "OutcomeRecorder",
    "RetryScheduler",
    "SendAttemptLoop",
    "SendOutcome",
    "ThrottleCoordinator",
    "Throttled",
]
