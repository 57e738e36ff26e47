"""Template strings for the conformqa ``init`` command.

The boilerplate is a minimal integration that passes both suites: a
FastAPI echo server that, in listening mode, reports every request it
handles to the harness's sample collector.
"""

INTEGRATION_YML_TEMPLATE = """# conformqa integration
# The harness refuses to run when spec_version differs from its own.
spec_version: "{spec_version}"

# Names the image: docker build -t test/{slug}
slug: {slug}

# Shell commands run in this directory before any test command.
before_tests: []

# Shell commands run by 'conformqa publish', in order.
publish:
  - echo "Configure your publish steps in integration.yml"
"""

DOCKERFILE_TEMPLATE = """FROM python:3.12-slim

WORKDIR /app
RUN pip install --no-cache-dir fastapi uvicorn httpx

COPY server.py .

# The harness maps a host port to 4000.
EXPOSE 4000
CMD ["uvicorn", "server:app", "--host", "0.0.0.0", "--port", "4000"]
"""

SERVER_TEMPLATE = '''"""Example echo server for conformqa.

Answers every path and method with what it was sent:
- request headers come back as response headers
- a JSON body comes back as JSON
- a ``return-status`` header picks the status code

With OPTIC_SERVER_LISTENING=TRUE it also posts one sample per request to
http://$OPTIC_SERVER_HOST:{collector_port}/samples.
"""

import json
import os

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.background import BackgroundTask

LISTENING = os.environ.get("OPTIC_SERVER_LISTENING") == "TRUE"
COLLECTOR_URL = "http://{{}}:{collector_port}/samples".format(os.environ.get("OPTIC_SERVER_HOST", "localhost"))

# Headers that describe the request itself and must not be echoed.
NOT_ECHOED = {{"host", "content-length", "content-type", "connection", "accept-encoding", "transfer-encoding"}}
NO_BODY_STATUSES = {{204, 304}}

app = FastAPI()


def parse_body(raw: bytes, content_type: str):
    if not raw:
        return {{}}
    text = raw.decode("utf-8", errors="replace")
    if "application/json" in content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


def query_parameters(request: Request) -> dict:
    params: dict = {{}}
    for key, value in request.query_params.multi_items():
        if key not in params:
            params[key] = value
        elif isinstance(params[key], list):
            params[key].append(value)
        else:
            params[key] = [params[key], value]
    return params


async def report(sample: dict) -> None:
    async with httpx.AsyncClient(timeout=5) as client:
        await client.post(COLLECTOR_URL, json=sample)


@app.api_route("/{{path:path}}", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"])
async def echo(path: str, request: Request) -> Response:
    raw = await request.body()
    content_type = request.headers.get("content-type", "")
    body = parse_body(raw, content_type)
    status = int(request.headers.get("return-status", "200"))
    headers = {{k: v for k, v in request.headers.items() if k not in NOT_ECHOED}}

    response_body = {{}} if status in NO_BODY_STATUSES else body
    background = None
    if LISTENING:
        sample = {{
            "request": {{
                "method": request.method,
                "url": request.url.path,
                "headers": dict(request.headers),
                "queryParameters": query_parameters(request),
                "body": body,
            }},
            "response": {{"statusCode": str(status), "headers": headers, "body": response_body}},
        }}
        background = BackgroundTask(report, sample)

    if status in NO_BODY_STATUSES:
        return Response(status_code=status, headers=headers, background=background)
    if isinstance(body, (dict, list)):
        return JSONResponse(body, status_code=status, headers=headers, background=background)
    return Response(raw, status_code=status, headers=headers, media_type=content_type or None, background=background)
'''

README_TEMPLATE = """# {slug}

Example integration for the conformqa harness.

## Run it

```bash
conformqa run-docker          # build and serve on localhost:4000
conformqa test-echo           # echo behaviour
conformqa test-library        # sample reporting (collector on port {collector_port})
conformqa test-all            # both
```

## Files

- `integration.yml`: slug, contract version, before_tests and publish commands
- `Dockerfile`: must serve on port 4000
- `server.py`: the echo server under test
"""

TEMPLATE_FILES = {
    "integration.yml": INTEGRATION_YML_TEMPLATE,
    "Dockerfile": DOCKERFILE_TEMPLATE,
    "server.py": SERVER_TEMPLATE,
    "README.md": README_TEMPLATE,
}
