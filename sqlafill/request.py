"""
Request body parsing

Payloads are json objects, the request content type is not checked.
The request class is installed on the Flask app by EntityFill.init_app:

    app.request_class = FillRequest
"""
from typing import Any, Dict

from flask import Request

import sqlafill
from .errors import InvalidPayloadError


# pylint: disable=too-many-ancestors
class FillRequest(Request):
    """
    Parse the request body into a payload dict
    """

    def get_payload(self) -> Dict[str, Any]:
        """
        :return: the de-serialized json object in the request body
        """
        # force: also accept bodies sent without content type
        payload = self.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            sqlafill.log.debug(f"Invalid request body (content type {self.content_type}): {self.get_data(as_text=True)[:200]!r}")
            raise InvalidPayloadError("The request body must be a json object")
        return payload
