"""Declarative callback routing on raw callback data."""

from __future__ import annotations
from tracking import t
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List

from telegram import Update
from telegram.ext import ContextTypes

CallbackHandlerFn = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[object]]
Predicate = Callable[[str], bool]


@dataclass
class PrefixRoute:
    prefix: str
    handler: CallbackHandlerFn


@dataclass
class PredicateRoute:
    predicate: Predicate
    handler: CallbackHandlerFn


class CallbackRouter:
    """Routes callback query data to async handlers.

    Exact tokens are checked first, then prefixes and predicates in
    registration order. Anything unmatched, including queries without data,
    goes to ``default_handler``.
    """

    def __init__(self, default_handler: CallbackHandlerFn) -> None:
        t('botapp.handlers.router.CallbackRouter.__init__')
        self._default_handler = default_handler
        self._exact_routes: Dict[str, CallbackHandlerFn] = {}
        self._prefix_routes: List[PrefixRoute] = []
        self._predicate_routes: List[PredicateRoute] = []

    def add_exact(self, token: str, handler: CallbackHandlerFn) -> None:
        t('botapp.handlers.router.CallbackRouter.add_exact')
        self._exact_routes[token] = handler

    def add_prefix(self, prefix: str, handler: CallbackHandlerFn) -> None:
        t('botapp.handlers.router.CallbackRouter.add_prefix')
        self._prefix_routes.append(PrefixRoute(prefix=prefix, handler=handler))

    def add_predicate(self, predicate: Predicate, handler: CallbackHandlerFn) -> None:
        t('botapp.handlers.router.CallbackRouter.add_predicate')
        self._predicate_routes.append(PredicateRoute(predicate=predicate, handler=handler))

    def resolve(self, data: str) -> CallbackHandlerFn:
        """Return the handler ``data`` would be dispatched to."""
        t('botapp.handlers.router.CallbackRouter.resolve')
        handler = self._exact_routes.get(data)
        if handler is not None:
            return handler
        for route in self._prefix_routes:
            if data.startswith(route.prefix):
                return route.handler
        for route in self._predicate_routes:
            if route.predicate(data):
                return route.handler
        return self._default_handler

    async def dispatch(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        t('botapp.handlers.router.CallbackRouter.dispatch')
        query = update.callback_query
        if not query or not query.data:
            await self._default_handler(update, context)
            return
        await self.resolve(query.data)(update, context)


__all__ = [
    "CallbackRouter",
    "PrefixRoute",
    "PredicateRoute",
]
