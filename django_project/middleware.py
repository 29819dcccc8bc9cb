from django.utils.deprecation import MiddlewareMixin


class NoCacheAPIMiddleware(MiddlewareMixin):
    """Middleware to disable browser caching on API responses.

    The timer endpoint is polled every second and its answer changes every
    second; a cached response would show a frozen countdown or hide a feed
    that was just started. Applies to all `/api/` endpoints.
    """

    def process_response(self, request, response):
        """Add Cache-Control headers to API responses."""
        if request.path_info.startswith("/api/"):
            response["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response["Pragma"] = "no-cache"
            response["Expires"] = "0"
        return response
