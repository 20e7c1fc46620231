"""Session controller service for aperonix.

This module drives one send/receive cycle per user message: append the
user turn, answer locally or ask the provider, and record the outcome.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from aperonix.domain.message import Message
from aperonix.errors import AperonixError, NotFound
from aperonix.interfaces.completion import CompletionInterface
from aperonix.logging import get_logger
from aperonix.services.composer import MessageComposer
from aperonix.services.conversation_store import ConversationStore
from aperonix.services.identity import IdentityResponder

__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "SendState",
    "SendStatusEvent",
    "SessionController",
]

logger = get_logger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to get response. Please try again."


class SendState(StrEnum):
    """Per-session send state: IDLE -> SENDING -> SETTLED | FAILED -> IDLE."""

    IDLE = "idle"
    SENDING = "sending"
    SETTLED = "settled"
    FAILED = "failed"


@dataclass(frozen=True)
class SendStatusEvent:
    """Send state change for one session."""

    session_id: str
    state: SendState


StatusListener = Callable[[SendStatusEvent], None]


class SessionController:
    """Send/receive state machine over the conversation store.

    At most one provider request is in flight per session. A send for a
    session that is already SENDING is rejected, not queued. Failures
    become assistant turns with ``error`` set; nothing is rolled back.

    Example:
        controller = SessionController(store, composer, client, system_prompt)
        reply = await controller.send("Hello")
    """

    def __init__(
        self,
        store: ConversationStore,
        composer: MessageComposer,
        client: CompletionInterface,
        system_prompt: str,
        identity: IdentityResponder | None = None,
    ) -> None:
        """Initialize controller.

        Args:
            store: Conversation store (already loaded)
            composer: Request composer
            client: Completion client
            system_prompt: Prompt attached to every provider request
            identity: Local identity responder (None disables the short-circuit)
        """
        self._store = store
        self._composer = composer
        self._client = client
        self._system_prompt = system_prompt
        self._identity = identity
        self._states: dict[str, SendState] = {}
        self._listeners: list[StatusListener] = []

    def state(self, session_id: str) -> SendState:
        return self._states.get(session_id, SendState.IDLE)

    def is_sending(self, session_id: str) -> bool:
        return self.state(session_id) == SendState.SENDING

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a send status listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def send(self, text: str, session_id: str | None = None) -> Message | None:
        """Send a user message and record the assistant's answer.

        Args:
            text: User input
            session_id: Target session (defaults to the active one)

        Returns:
            The appended assistant message, or None if the send was rejected
            (blank text, or the session is already sending) or the session
            was deleted before the answer arrived

        Raises:
            NotFound: If session_id does not exist when the send starts
        """
        if not text or not text.strip():
            return None

        session = (
            self._store.get_session(session_id)
            if session_id is not None
            else self._store.active_session
        )
        if self.is_sending(session.id):
            logger.info("send_rejected", chat_id=session.id, reason="already sending")
            return None

        # Claim the session before the first await
        self._states[session.id] = SendState.SENDING
        try:
            prior = list(session.messages)
            await self._store.append_message(session.id, Message.user(text))
            self._set_state(session.id, SendState.SENDING)

            reply = await self._answer(session.id, text, prior)
            try:
                await self._store.append_message(session.id, reply)
            except NotFound:
                # Deleted while the answer was pending
                logger.info("send_orphaned", chat_id=session.id, failed=reply.is_error)
                return None

            self._set_state(session.id, SendState.FAILED if reply.is_error else SendState.SETTLED)
            return reply
        finally:
            self._set_state(session.id, SendState.IDLE)

    async def _answer(self, session_id: str, text: str, prior: list[Message]) -> Message:
        if self._identity is not None:
            answer = self._identity.respond(text)
            if answer is not None:
                logger.info("identity_short_circuit", chat_id=session_id)
                await asyncio.sleep(self._identity.delay_seconds)
                return Message.assistant(answer)

        request = self._composer.compose(self._system_prompt, prior, text)
        try:
            content = await self._client.complete(request)
        except AperonixError as e:
            logger.warning(
                "send_failed",
                chat_id=session_id,
                error_type=type(e).__name__,
                error=e.message,
            )
            return Message.failure(e.user_message)
        except Exception:
            logger.exception("send_failed_unexpectedly", chat_id=session_id)
            return Message.failure(GENERIC_FAILURE_MESSAGE)

        return Message.assistant(content)

    def _set_state(self, session_id: str, state: SendState) -> None:
        if state == SendState.IDLE:
            self._states.pop(session_id, None)
        else:
            self._states[session_id] = state

        event = SendStatusEvent(session_id, state)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error("status_listener_failed", state=state.value, error=str(e))
