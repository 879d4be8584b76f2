from __future__ import annotations

from typing import Any, Callable, Dict, List, Union

from mumble.core.MessageTypes import MessageType
from mumble.shared.errors import HandlerError, MumbleError
from mumble.shared.log import get_logger
from mumble.shared.messages import Message

logger = get_logger(__name__)

# Handlers are plain callables run synchronously on the event loop: (sender, message)
MessageHandler = Callable[[Any, Message], None]


class MessageDispatcher:
    """
    Routes inbound messages to the handlers registered for their exact kind.

    The kind is read from ``message.kind``, which the message layer resolves
    when a frame is decoded. Handlers registered for one kind run in
    registration order. A message whose kind has no handlers is ignored.

    Handler failures:
    - a MumbleError raised by a handler propagates unchanged, so handlers can
      end the handshake with a protocol outcome (e.g. RejectedError)
    - any other exception is logged and re-raised as HandlerError
    Dispatching never mutates the handler table.
    """

    def __init__(self) -> None:
        self._handlers: Dict[MessageType, List[MessageHandler]] = {}

    def register(self, kind: Union[MessageType, str], handler: MessageHandler) -> None:
        """Subscribe ``handler`` to messages of exactly ``kind``."""
        if not callable(handler):
            raise TypeError(f"Handler for {kind} is not callable: {handler!r}")
        if not isinstance(kind, MessageType):
            kind = MessageType.from_string(kind)
        self._handlers.setdefault(kind, []).append(handler)

    def dispatch(self, sender: Any, message: Message) -> bool:
        """
        Invoke every handler registered for the message's kind.

        Returns:
            True if at least one handler ran, False on a lookup miss
        """
        kind = message.kind
        handlers = self._handlers.get(kind)
        if not handlers:
            logger.debug("No handler registered for %s; ignoring", kind.value, extra={"msg_type": kind.value})
            return False

        for handler in tuple(handlers):
            try:
                handler(sender, message)
            except MumbleError:
                raise
            except Exception as e:
                logger.error("Handler %s failed: %s", getattr(handler, "__qualname__", handler), e,
                             extra={"msg_type": kind.value})
                raise HandlerError(kind.value, e) from e
        return True
