import json
import sys
from typing import Any

import click
from requests import Response

# status codes with a fixed, human readable explanation
KNOWN_FAILURES = {
    404: "Photo not found.",
    503: "Photo service unavailable.",
}


def _request_body(r: Response) -> Any:
    body = r.request.body
    if isinstance(body, bytes):
        # multipart uploads; the image itself is not worth printing
        return f"<{len(body)} bytes>"
    try:
        return json.loads(str(body))
    except ValueError:
        return str(body)


def _error_detail(r: Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text


def handle_request_error(r: Response) -> dict:
    if r.ok:
        return {"response": r.json()}
    detail = _error_detail(r)
    if r.status_code in KNOWN_FAILURES:
        out = {"error": KNOWN_FAILURES[r.status_code], "context": {"url": r.url}}
        if isinstance(detail, dict) and "id" in detail:
            # stored, but no thumbnail was scheduled
            out["context"]["id"] = detail["id"]
        return out
    return {
        "context": {
            "url": r.url,
            "method": r.request.method,
            "status": r.status_code,
            "body": _request_body(r),
        },
        "error": detail,
    }


def exit_with(out: dict):
    failed = bool(out.get("error"))
    text = json.dumps(out, indent=2, sort_keys=True)
    if failed:
        click.secho(text, fg="red")
    else:
        click.echo(text)
    sys.exit(1 if failed else 0)
