#!/usr/bin/env python3
"""Example Python client for the gatewayops HTTP API.

Usage:
    GATEWAYOPS_URL=http://localhost:8787 OPS_ACCESS_TOKEN=... \
        python scripts/ops_client_example.py

Requires the gatewayops server to be running.
"""

import os
import time

import httpx


def main():
    base_url = os.getenv("GATEWAYOPS_URL", "http://localhost:8787")
    token = os.getenv("OPS_ACCESS_TOKEN")
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    # Config commands can take up to 20s on the server side
    client = httpx.Client(base_url=base_url, headers=headers, timeout=30.0)

    print("=== gatewayops client test ===\n")

    try:
        print("Checking gateway status...")
        response = client.get("/status")
        data = response.json()
        print(f"  ok={data.get('ok')} status={data.get('status')}")
        print(f"  Process: {data.get('processId')}")

        print("\nListing sandbox processes...")
        data = client.get("/processes").json()
        print(f"  Count: {data['count']}")
        for proc in data["processes"]:
            print(f"  {proc['id']}  {proc['status']:<10} {proc['command']}")

        print("\nReading gateway.port...")
        response = client.get("/config/get", params={"path": "gateway.port"})
        data = response.json()
        print(f"  HTTP {response.status_code} exitCode={data.get('exitCode')}")
        print(f"  Output: {data.get('stdout', '').strip()}")

        print("\nReading gateway.bind (not allowlisted)...")
        response = client.get("/config/get", params={"path": "gateway.bind"})
        print(f"  HTTP {response.status_code}: {response.json().get('error')}")

        print("\nRestarting gateway...")
        data = client.post("/restart").json()
        print(f"  {data['message']}")
        print(f"  Previous process: {data.get('previousProcessId')}")

        # The restart acknowledgment comes back before the relaunch finishes
        for _ in range(10):
            time.sleep(1)
            data = client.get("/status").json()
            if data.get("ok"):
                print(f"  Gateway back as {data['processId']}")
                break
        else:
            print("  Gateway not running yet")

        print("\nFetching gateway logs...")
        data = client.get("/logs").json()
        print(f"  Status: {data['status']}")
        print(f"  Stdout tail: {data.get('stdout', '')[-200:]}")

    finally:
        client.close()

    print("\nDone!")


if __name__ == "__main__":
    main()
