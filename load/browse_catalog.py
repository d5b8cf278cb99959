"""Locust load-test file for the anonymous catalog browsing path.

Run standalone, e.g.:

    locust -f load/browse_catalog.py --headless -u 200 -r 20 -t 5m \
           --host https://staging.vidtube.example

Each simulated visitor lists the newest videos, occasionally searches, and
opens one of the videos it saw (which also counts a view).
"""

import random

from locust import HttpUser, task, between

SEARCH_TERMS = ["music", "travel", "cooking", "python", "cats"]


class CatalogVisitor(HttpUser):
    wait_time = between(0.1, 0.3)

    def on_start(self):
        self.seen_video_ids: list[str] = []

    def _remember(self, response) -> None:
        if response.status_code != 200:
            return
        items = response.json().get("data", {}).get("items", [])
        self.seen_video_ids = [item["videoId"] for item in items] or self.seen_video_ids

    @task(5)
    def latest(self):
        with self.client.get(
            "/api/v1/videos", params={"limit": 20}, catch_response=True
        ) as response:
            self._remember(response)

    @task(2)
    def search(self):
        with self.client.get(
            "/api/v1/videos",
            params={"query": random.choice(SEARCH_TERMS), "sortBy": "views"},
            name="/api/v1/videos?query",
            catch_response=True,
        ) as response:
            self._remember(response)

    @task(3)
    def watch(self):
        if not self.seen_video_ids:
            return
        video_id = random.choice(self.seen_video_ids)
        self.client.get(f"/api/v1/videos/{video_id}", name="/api/v1/videos/{id}")
