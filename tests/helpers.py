import json
from unittest.mock import Mock


def make_response(status_code=200, payload=None, text=None):
    """A stand-in for requests.Response."""
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if text is None:
        text = json.dumps(payload) if payload is not None else ""
    resp.text = text
    resp.content = text.encode("utf-8")
    return resp
