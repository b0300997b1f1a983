from __future__ import annotations


class SocialError(Exception):
    """Base class for failures surfaced by the social ledger."""


class InvalidIdentity(SocialError):
    """The book resolved to the ``unknown`` key; nothing may be written for it."""


class NotAuthenticated(SocialError):
    pass


class EmptyComment(SocialError):
    pass


class StoreUnavailable(SocialError):
    """A store query or mutation failed in transport or was rejected."""


class DuplicateLike(SocialError):
    """The store rejected a like insert on its (user, book key) uniqueness rule.

    The toggle engine treats this as an already-liked outcome, not a failure.
    """


class CommentNotFound(SocialError):
    """No comment with that id was written by the requesting user."""
