"""Attach an explicit ActorContext to every request."""
from .context import actor_from_request


class ActorContextMiddleware:
    """Builds ``request.actor`` once, after authentication has run."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.actor = actor_from_request(request)
        return self.get_response(request)
