#!/usr/bin/env python3
"""Seed development visits into DynamoDB."""

import argparse
import os
import random
import sys
from datetime import timedelta

# Add the shared layer to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src", "layers", "shared", "python"))

from visteria.models.base import utc_now
from visteria.models.visitor import TrackVisitRequest
from visteria.repositories.visitor import VisitorRepository
from visteria.services.tracking_service import TrackingService
from visteria.storage import DynamoStore
from visteria.utils.fingerprint import ClientInfo

DEMO_SITES = [
    ("blog", "Demo Blog", "https://blog.example.com", ["/", "/posts/hello", "/posts/dynamo", "/about"]),
    ("shop", "Demo Shop", "https://shop.example.com", ["/", "/cart", "/products/1", "/products/2"]),
]

DEMO_CLIENTS = [
    ClientInfo(ip="203.0.113.10", user_agent="Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0"),
    ClientInfo(ip="203.0.113.11", user_agent="Mozilla/5.0 (Macintosh) Safari/17.0"),
    ClientInfo(ip="198.51.100.7", user_agent="Mozilla/5.0 (iPhone) Mobile Safari/17.0"),
    ClientInfo(ip="198.51.100.8", user_agent="Mozilla/5.0 (Windows NT 10.0) Chrome/126.0"),
]

REFERRERS = ["", "https://www.google.com/", "https://news.ycombinator.com/"]


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed development visits")
    parser.add_argument("--stage", default="dev", help="Deployment stage")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--endpoint-url", default=os.environ.get("DYNAMODB_ENDPOINT_URL"),
                        help="DynamoDB endpoint (e.g. DynamoDB Local)")
    parser.add_argument("--visits", type=int, default=50, help="Visits per site")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    args = parser.parse_args()

    table_name = f"visteria-{args.stage}"
    print(f"Seeding data to table: {table_name}")

    rng = random.Random(args.seed)
    now = utc_now()

    with DynamoStore(table_name, region_name=args.region, endpoint_url=args.endpoint_url) as store:
        store.ensure_table()
        tracking = TrackingService(VisitorRepository(store))

        for site_id, site_name, site_url, paths in DEMO_SITES:
            for _ in range(args.visits):
                client = rng.choice(DEMO_CLIENTS)
                request = TrackVisitRequest(
                    site_id=site_id,
                    site_name=site_name,
                    site_url=site_url,
                    url=f"{site_url}{rng.choice(paths)}",
                    referrer=rng.choice(REFERRERS),
                    user_agent=client.user_agent,
                    visited_at=now - timedelta(minutes=rng.randint(0, 60 * 24 * 14)),
                )
                tracking.track_visit(request, client, now=now)
            print(f"Seeded {args.visits} visits for site: {site_name}")

    print("\nSeeding complete!")
    print("\nTo run the API locally:")
    print("  python scripts/serve_local.py")


if __name__ == "__main__":
    main()
