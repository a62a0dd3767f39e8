#!/usr/bin/env python3
"""
API Health Check Script - Verifies the feedback API endpoints and formats.
Run this after a deploy to check the dashboard will work against the API.

Usage: DASHBOARD_PASSWORD=... python3 scripts/check_api_health.py [BASE_URL]
"""

import json
import os
import sys
import urllib.error
import urllib.request
from typing import Any

DEFAULT_URL = "http://localhost:8000"
USER_AGENT = "FeedbackStream-HealthCheck/1.0"


def fetch_json(
    url: str,
    token: str | None = None,
    body: dict | None = None,
    timeout: int = 10,
) -> dict[str, Any]:
    """Fetch JSON from URL, POSTing body when given."""
    headers = {"User-Agent": USER_AGENT}
    data = None
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if body is not None:
        headers["Content-Type"] = "application/json"
        data = json.dumps(body).encode()
    req = urllib.request.Request(url, data=data, headers=headers)
    with urllib.request.urlopen(req, timeout=timeout) as response:
        return json.loads(response.read().decode())


def check_health(base_url: str) -> tuple[bool, str]:
    try:
        data = fetch_json(f"{base_url}/health")
        if data.get("status") != "healthy":
            return False, f"Unexpected status: {data.get('status')}"
        return True, f"OK - version {data.get('version')}"
    except urllib.error.URLError as e:
        return False, f"Request failed: {e}"
    except json.JSONDecodeError as e:
        return False, f"Invalid JSON: {e}"


def login(base_url: str, password: str) -> tuple[str | None, str]:
    try:
        data = fetch_json(f"{base_url}/api/auth", body={"password": password})
        token = data.get("token")
        if not token:
            return None, "ERROR: No token in auth response"
        return token, "OK"
    except urllib.error.HTTPError as e:
        return None, f"FAILED: HTTP {e.code}"
    except Exception as e:
        return None, f"FAILED: {e}"


def check_feedback_format(base_url: str, token: str) -> tuple[bool, str]:
    """Check the snapshot endpoint returns {success, data, count}."""
    try:
        data = fetch_json(f"{base_url}/api/feedback?limit=5", token=token)

        if not data.get("success"):
            return False, f"ERROR: {data.get('error')} - {data.get('message')}"
        if not isinstance(data.get("data"), list):
            return False, "ERROR: 'data' is not an array"
        if data.get("count") != len(data["data"]):
            return False, "ERROR: 'count' does not match 'data'"

        required_fields = ["id", "userName", "userEmail", "feedbackText", "createdAt"]
        for item in data["data"]:
            missing = [f for f in required_fields if f not in item]
            if missing:
                return False, f"ERROR: Record {item.get('id')} missing {missing}"

        return True, f"OK - {data['count']} records"
    except Exception as e:
        return False, f"FAILED: {e}"


def check_stream_connects(base_url: str, token: str) -> tuple[bool, str]:
    """Check the stream opens with a connected event."""
    req = urllib.request.Request(
        f"{base_url}/api/feedback/stream",
        headers={"User-Agent": USER_AGENT, "Authorization": f"Bearer {token}"},
    )
    try:
        with urllib.request.urlopen(req, timeout=10) as response:
            content_type = response.headers.get("Content-Type", "")
            if not content_type.startswith("text/event-stream"):
                return False, f"ERROR: Content-Type is {content_type}"
            first_line = response.readline().decode().strip()
        if not first_line.startswith("data:"):
            return False, f"ERROR: Unexpected first line {first_line!r}"
        event = json.loads(first_line[len("data:") :])
        if event.get("type") != "connected":
            return False, f"ERROR: First event is {event.get('type')}"
        return True, "OK - connected"
    except Exception as e:
        return False, f"FAILED: {e}"


def main():
    base_url = (sys.argv[1] if len(sys.argv) > 1 else DEFAULT_URL).rstrip("/")
    password = os.environ.get("DASHBOARD_PASSWORD")

    print("=" * 60)
    print("Feedback Stream API Health Check")
    print("=" * 60)
    print(f"\n{base_url}")
    print("-" * 40)

    all_passed = True

    ok, msg = check_health(base_url)
    print(f"  {'✓' if ok else '✗'} Health: {msg}")
    all_passed = all_passed and ok

    if not password:
        print("  - Skipping authenticated checks (DASHBOARD_PASSWORD not set)")
    else:
        token, msg = login(base_url, password)
        print(f"  {'✓' if token else '✗'} Login: {msg}")
        all_passed = all_passed and token is not None

        if token:
            ok, msg = check_feedback_format(base_url, token)
            print(f"  {'✓' if ok else '✗'} Feedback: {msg}")
            all_passed = all_passed and ok

            ok, msg = check_stream_connects(base_url, token)
            print(f"  {'✓' if ok else '✗'} Stream: {msg}")
            all_passed = all_passed and ok

    print("\n" + "=" * 60)
    if all_passed:
        print("✓ All checks passed")
        return 0
    else:
        print("✗ Some checks failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
