"""Whitelist authentication middleware for the receive stage."""

import structlog

from webby.middleware.base import Middleware, MiddlewareAction, ReceiveContext

logger = structlog.get_logger()


class AuthMiddleware(Middleware):
    def __init__(self, allowed_user_ids: set[str], *, allow_all: bool = False) -> None:
        self._allowed = allowed_user_ids
        self._allow_all = allow_all

    async def process(self, ctx: ReceiveContext) -> MiddlewareAction:
        message = ctx.response.message
        if self._allow_all or message.user.id in self._allowed:
            return MiddlewareAction.NEXT

        logger.warning("auth_rejected", user_id=message.user.id, room=message.room)
        return MiddlewareAction.DONE
