"""Basic Locust profile for mixed generate/redirect operations.

This profile is convenient for local smoke load and interactive testing. Each
user registers the shared domain once (a 409 means another user got there
first) and keeps an in-user short-code pool so redirect traffic can target
recently minted short URLs.

Run with::

    locust -f stress/locustfile.py --host http://localhost:8000
"""

import random

from locust import HttpUser, between, task

DOMAIN = "t.ly/"
MAX_CODES_PER_USER = 200


class UrlShortenerUser(HttpUser):
    """Mixed workload user for local functional load checks."""

    wait_time = between(0.1, 0.5)

    def on_start(self) -> None:
        """Register the load-test domain and initialize the per-user code cache."""

        self.codes: list[str] = []
        with self.client.post(
            "/api/domains", json={"domain": DOMAIN}, name="POST /api/domains", catch_response=True
        ) as response:
            if response.status_code in (201, 409):
                response.success()

    @task(2)
    def generate(self) -> None:
        """Mint new short URLs and add successful codes to user cache."""

        url = f"https://example.com/page/{random.randint(1, 1000000)}"
        payload = {"url": url, "domain": DOMAIN}
        response = self.client.post("/generate", json=payload, name="POST /generate")

        if response.status_code == 201:
            short_code = response.json().get("short_code")
            if short_code:
                self.codes.append(short_code)
                if len(self.codes) > MAX_CODES_PER_USER:
                    self.codes = self.codes[-MAX_CODES_PER_USER:]

    @task(8)
    def redirect(self) -> None:
        """Resolve an existing short code or seed one during warmup."""

        if not self.codes:
            self.generate()
            return

        short_code = random.choice(self.codes)
        self.client.get(
            f"/{short_code}?utm_source=locust",
            name="GET /:short_code",
            allow_redirects=False,
        )
