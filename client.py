import requests
from typing import Optional

class TrackerClient:
    """Simple REST client for the tracker API."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def log_weight(self, weight: float, date: Optional[str] = None, note: str = "") -> int:
        params = {"weight": weight, "note": note}
        if date is not None:
            params["date"] = date
        resp = requests.post(f"{self.base_url}/weights", params=params)
        resp.raise_for_status()
        return resp.json()["id"]

    def delete_weight(self, entry_id: int) -> None:
        resp = requests.delete(f"{self.base_url}/weights/{entry_id}")
        resp.raise_for_status()

    def list_weights(self, **params: str):
        resp = requests.get(f"{self.base_url}/weights", params=params)
        resp.raise_for_status()
        return resp.json()

    def daily_log(self, date: str) -> dict:
        resp = requests.get(f"{self.base_url}/logs/{date}")
        resp.raise_for_status()
        return resp.json()

    def save_workout(self, category: str, exercises: list[dict], **fields) -> int:
        resp = requests.post(
            f"{self.base_url}/workouts",
            json={"category": category, "exercises": exercises, **fields},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def recovery(self, today: Optional[str] = None) -> dict:
        params = {} if today is None else {"today": today}
        resp = requests.get(f"{self.base_url}/recovery", params=params)
        resp.raise_for_status()
        return resp.json()

    def deduplicate_library(self) -> list[int]:
        resp = requests.post(f"{self.base_url}/library/deduplicate")
        resp.raise_for_status()
        return resp.json()["removed"]
