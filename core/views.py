from rest_framework import permissions

from .exceptions import StoreError, error_response, require_staff


class StoreErrorMixin:
    """Answers service-layer StoreErrors with their payload and status code."""

    def handle_exception(self, exc):
        if isinstance(exc, StoreError):
            return error_response(exc)
        return super().handle_exception(exc)


class StaffOnlyMixin(StoreErrorMixin):
    permission_classes = [permissions.IsAuthenticated]

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        require_staff(request.user)
