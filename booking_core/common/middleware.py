from __future__ import annotations

import re

from booking_core.common.api.exceptions import ensure_request_id

_SAFE_RID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


class RequestIdMiddleware:
    """
    Tags every request with a request_id used by the error envelope and logs.

    Behavior:
      - Honours an inbound X-Request-Id (from a proxy) when it looks sane.
      - Otherwise generates one.
      - Echoes it back as the X-Request-Id response header.
    """

    META_KEY = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-Id"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        inbound = (request.META.get(self.META_KEY) or "").strip()
        if inbound and _SAFE_RID.match(inbound):
            request.request_id = inbound

        rid = ensure_request_id(request)
        response = self.get_response(request)
        response[self.RESPONSE_HEADER] = rid
        return response
