import json
import sys
from typing import Optional

import requests

API = 'http://127.0.0.1:8000'


def call(msg: str, sid: Optional[str] = None, user_id: Optional[str] = None) -> dict:
  r = requests.post(
    f"{API}/chat",
    json={"message": msg, "session_id": sid, "user_id": user_id, "plan_on_intent": True},
  )
  r.raise_for_status()
  data = r.json()
  print(json.dumps(data, indent=2))
  return data


def create_excursion(sid: str, lat: float, lng: float) -> dict:
  r = requests.post(f"{API}/excursions", json={"session_id": sid, "location": {"lat": lat, "lng": lng}})
  print(r.status_code, json.dumps(r.json(), indent=2))
  return r.json()


if __name__ == '__main__':
  user = sys.argv[1] if len(sys.argv) > 1 else "demo-user"
  requests.put(
    f"{API}/profiles/{user}",
    json={"user_id": user, "activity_preferences": ["Walking"], "therapy_preferences": ["reduce stress"]},
  ).raise_for_status()

  data = call("I'd love to go for a walk today", user_id=user)
  sid = data["session_id"]
  data = call("about 45 minutes", sid)
  data = call("surprise me", sid)
  data = call("yes please", sid)
  if data.get("ready_to_create"):
    create_excursion(sid, 37.7694, -122.4862)

  r = requests.post(f"{API}/intent/parse", json={"text": "an easy 1.5 hours hike within 3 miles to reduce stress"})
  print(json.dumps(r.json(), indent=2))
