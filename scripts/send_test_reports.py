#!/usr/bin/env python3
"""
Send demo hospital capacity reports to the service.

Usage:
    # Report every demo hospital once over HTTP
    python scripts/send_test_reports.py

    # Keep reporting every 60 seconds, publishing to the reported stream instead
    python scripts/send_test_reports.py --via-stream --interval 60

    # Ask for a recommendation afterwards
    python scripts/send_test_reports.py --recommend 39.93,32.85
"""

import argparse
import json
import os
import random
import time
import uuid
from datetime import datetime, timezone

import redis
import requests

DEMO_HOSPITALS = [
    {"hospital_id": "ANK-001", "name": "Ankara City Hospital", "city": "Ankara", "district": "Cankaya",
     "location": {"lat": 39.8927, "lon": 32.7626}, "total_beds": 3700, "icu_total": 700},
    {"hospital_id": "ANK-002", "name": "Hacettepe University Hospital", "city": "Ankara", "district": "Altindag",
     "location": {"lat": 39.9334, "lon": 32.8655}, "total_beds": 1100, "icu_total": 160},
    {"hospital_id": "ANK-003", "name": "Gazi University Hospital", "city": "Ankara", "district": "Yenimahalle",
     "location": {"lat": 39.9380, "lon": 32.8220}, "total_beds": 1050, "icu_total": 120},
    {"hospital_id": "ANK-004", "name": "Etlik City Hospital", "city": "Ankara", "district": "Kecioren",
     "location": {"lat": 39.9864, "lon": 32.8460}, "total_beds": 4050, "icu_total": 800},
    {"hospital_id": "ESK-001", "name": "Eskisehir City Hospital", "city": "Eskisehir", "district": "Odunpazari",
     "location": {"lat": 39.7510, "lon": 30.4770}, "total_beds": 1600, "icu_total": 250},
]


def get_api_url():
    """Get API URL from environment variables."""
    host = os.environ.get("API_HOST", "localhost")
    port = int(os.environ.get("SERVICE_PORT", 8093))
    return f"http://{host}:{port}"


def build_report(hospital: dict) -> dict:
    """Random but plausible capacity figures for a demo hospital."""
    total_beds = hospital["total_beds"]
    icu_total = hospital["icu_total"]
    return {
        "hospital_id": hospital["hospital_id"],
        "name": hospital["name"],
        "city": hospital["city"],
        "district": hospital["district"],
        "location": hospital["location"],
        "capacity": {
            "total_beds": total_beds,
            "available_beds": random.randint(0, total_beds // 5),
            "icu_total": icu_total,
            "icu_available": random.randint(0, icu_total // 4),
        },
        "updated_at": datetime.now(timezone.utc).isoformat(),
        "source": "demo-script",
    }


def send_report(report: dict, api_url: str, api_key: str = None) -> bool:
    """POST a report to /capacity/update."""
    headers = {"x-api-key": api_key} if api_key else {}
    try:
        response = requests.post(
            f"{api_url}/capacity/update",
            json=report,
            headers=headers,
            timeout=30
        )

        if response.status_code == 200:
            print(f"Report accepted: {report['hospital_id']} "
                  f"({report['capacity']['available_beds']} beds, {report['capacity']['icu_available']} ICU)")
            return True
        else:
            print(f"Failed: {response.status_code} - {response.text[:200]}")
            return False

    except requests.exceptions.RequestException as e:
        print(f"Request failed: {e}")
        return False


def publish_report(report: dict, client: redis.Redis, stream: str) -> bool:
    """Append a report to the reported stream, wrapped like the service's own events."""
    envelope = {
        "event_name": stream,
        "event_id": str(uuid.uuid4()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": report,
    }
    try:
        entry_id = client.xadd(stream, {"data": json.dumps(envelope)})
        print(f"Published {report['hospital_id']} to {stream} as {entry_id}")
        return True
    except redis.RedisError as e:
        print(f"Publish failed: {e}")
        return False


def health_check(api_url: str) -> bool:
    """Check if the capacity API is available."""
    try:
        response = requests.get(f"{api_url}/health", timeout=5)
        if response.status_code == 200:
            print(f"Capacity API healthy at {api_url}")
            return True
        else:
            print(f"Capacity API unhealthy: {response.status_code}")
            return False
    except requests.exceptions.RequestException as e:
        print(f"Cannot reach capacity API at {api_url}: {e}")
        return False


def show_recommendation(api_url: str, lat: float, lon: float, icu_required: bool):
    params = {"lat": lat, "lon": lon, "radius_km": 50}
    if icu_required:
        params["icu_required"] = "true"
    response = requests.get(f"{api_url}/capacity/recommendation", params=params, timeout=30)
    body = response.json()

    print(f"\nRecommendation for ({lat}, {lon}), {body['meta']['excluded_stale_count']} stale hospital(s) skipped:")
    for rank, item in enumerate(body["items"], start=1):
        print(f"  {rank}. {item['name']}: {item['current_available_beds']} beds, "
              f"{item['current_icu_available']} ICU, {item['distance_km']:.1f} km")


def main():
    parser = argparse.ArgumentParser(
        description="Send demo hospital capacity reports to the service"
    )

    parser.add_argument(
        "--interval",
        type=int,
        default=0,
        help="Repeat every N seconds (default: 0 - send one round)"
    )

    parser.add_argument(
        "--via-stream",
        action="store_true",
        help="Publish to the reported stream instead of calling the HTTP API"
    )

    parser.add_argument(
        "--recommend",
        type=str,
        default=None,
        help="After sending, print a recommendation for LAT,LON"
    )

    parser.add_argument(
        "--icu",
        action="store_true",
        help="Ask for ICU capacity in the recommendation"
    )

    args = parser.parse_args()

    api_url = get_api_url()
    api_key = os.environ.get("CAPACITY_API_KEY")
    stream = os.environ.get("STREAM_REPORTED", "hospital.capacity.reported")
    client = None

    if args.via_stream:
        client = redis.Redis(
            host=os.environ.get("REDIS_HOST", "localhost"),
            port=int(os.environ.get("REDIS_PORT", 6379)),
            decode_responses=True,
        )
        print(f"Publishing to stream {stream}\n")
    else:
        print(f"API URL: {api_url}\n")
        if not health_check(api_url):
            print("\nAPI not available. Make sure services are running:")
            print("   docker-compose up -d")
            return

    while True:
        success_count = 0
        for hospital in DEMO_HOSPITALS:
            report = build_report(hospital)
            if args.via_stream:
                ok = publish_report(report, client, stream)
            else:
                ok = send_report(report, api_url, api_key)
            if ok:
                success_count += 1

        print(f"\nSent {success_count}/{len(DEMO_HOSPITALS)} reports successfully")

        if args.recommend:
            lat, lon = (float(part) for part in args.recommend.split(","))
            # Stream reports are applied asynchronously by the consumer
            if args.via_stream:
                time.sleep(2)
            show_recommendation(api_url, lat, lon, args.icu)

        if args.interval <= 0:
            break
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
