"""
Locust Load Test Suite

Needs an ADMIN account to create the contested facility. Seed one on the API
with INITIAL_ADMIN_EMAIL / INITIAL_ADMIN_PASSWORD, then point the load test at it:
  export LOAD_ADMIN_EMAIL=admin@campus.edu LOAD_ADMIN_PASSWORD=...

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Overlapping bookings on one room
  locust -f locustfile.py --tags throughput   # Cached catalogue + unread-count polling
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

CONTESTED_FACILITY_ID = None
CONTESTED_DATE = (date.today() + timedelta(days=60)).isoformat()
PASSWORD = "loadtest-password"


def random_email():
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=10))
    return f"load_{suffix}@campus.test"


def register(client) -> dict:
    """Register a throwaway USER and return bearer headers (empty on failure)."""
    resp = client.post("/api/v1/auth/register", json={
        "email": random_email(),
        "name": "Load Tester",
        "password": PASSWORD,
    })
    if resp.status_code != 201:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: contested bookings target {CONTESTED_DATE}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many users request overlapping windows in one room

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify no two active bookings overlap:
      SELECT a.id, b.id FROM bookings a JOIN bookings b
        ON a.facility_id = b.facility_id AND a.date = b.date AND a.id < b.id
       WHERE a.status IN ('PENDING', 'APPROVED') AND b.status IN ('PENDING', 'APPROVED')
         AND a.start_time < b.end_time AND b.start_time < a.end_time;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONTESTED_FACILITY_ID
        self.headers = register(self.client)

        if CONTESTED_FACILITY_ID is None:
            resp = self.client.post("/api/v1/auth/login", json={
                "email": os.environ.get("LOAD_ADMIN_EMAIL", "admin@campus.edu"),
                "password": os.environ.get("LOAD_ADMIN_PASSWORD", ""),
            })
            if resp.status_code != 200:
                return
            admin_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
            resp = self.client.post(
                "/api/v1/facilities/",
                json={"name": "Contested Room", "type": "MEETING_ROOM", "capacity": 20},
                headers=admin_headers,
            )
            if resp.status_code == 201:
                CONTESTED_FACILITY_ID = resp.json()["id"]
                print(f"\n✓ Created facility {CONTESTED_FACILITY_ID}\n")

    @tag("concurrency")
    @task
    def book_overlapping_window(self):
        """Every request is one hour starting on a quarter hour between 09:00 and 11:45."""
        if not CONTESTED_FACILITY_ID or not self.headers:
            return

        start_minutes = 9 * 60 + 15 * random.randint(0, 11)
        start = f"{start_minutes // 60:02d}:{start_minutes % 60:02d}"
        end = f"{start_minutes // 60 + 1:02d}:{start_minutes % 60:02d}"

        with self.client.post("/api/v1/bookings/",
            json={
                "facility_id": CONTESTED_FACILITY_ID,
                "date": CONTESTED_DATE,
                "start_time": start,
                "end_time": end,
                "purpose": "Load test",
                "expected_attendees": 2,
            },
            headers=self.headers,
            catch_response=True,
            name="/api/v1/bookings/ [contested]",
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: window already taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=False on the API, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = register(self.client)

    @tag("throughput", "read")
    @task(10)
    def list_facilities_cached(self):
        self.client.get("/api/v1/facilities/", headers=self.headers, name="/api/v1/facilities/ [cached]")

    @tag("throughput", "read")
    @task(10)
    def poll_unread_count(self):
        """What every open browser tab does every ~30s."""
        self.client.get("/api/v1/notifications/count", headers=self.headers)

    @tag("throughput", "read")
    @task(3)
    def search_facilities(self):
        self.client.get(
            "/api/v1/facilities/search?min_capacity=10&status=ACTIVE",
            headers=self.headers,
            name="/api/v1/facilities/search",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_facility(self):
        with self.client.post("/api/v1/bookings/",
            json={"facility_id": 999999, "date": CONTESTED_DATE, "start_time": "10:00",
                  "end_time": "11:00", "purpose": "x", "expected_attendees": 1},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def inverted_window(self):
        with self.client.post("/api/v1/bookings/",
            json={"facility_id": 1, "date": CONTESTED_DATE, "start_time": "11:00",
                  "end_time": "10:00", "purpose": "x", "expected_attendees": 1},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 404))

    @tag("edge")
    @task
    def zero_attendees(self):
        with self.client.post("/api/v1/bookings/",
            json={"facility_id": 1, "date": CONTESTED_DATE, "start_time": "10:00",
                  "end_time": "11:00", "purpose": "x", "expected_attendees": 0},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def approve_without_admin(self):
        with self.client.put("/api/v1/bookings/1/approve",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (403,))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.get("/api/v1/bookings/my", catch_response=True) as resp:
            self._expect(resp, (401,))
