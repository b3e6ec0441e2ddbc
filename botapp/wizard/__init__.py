"""Stateless reservation wizard: payload codec, keyboards and Telegram handlers."""

from .handler import ReservationWizard
from .payload import decode, encode

__all__ = ['ReservationWizard', 'decode', 'encode']
