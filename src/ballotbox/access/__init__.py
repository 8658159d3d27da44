"""Access control collaborators."""

from ballotbox.access.authorizer import Authorizer, OwnerAuthorizer, require_identity

__all__ = ["Authorizer", "OwnerAuthorizer", "require_identity"]
