#!/usr/bin/env python3
"""Benchmark the gate: latency (p50, p95, p99) and throughput of gated executions.

Usage:
  With Keycloak:
    export API_URL=http://localhost:8000 KEYCLOAK_URL=... BENCH_USER=... BENCH_PASSWORD=...
    python scripts/bench_gate.py --num-calls 500

  Development (no Keycloak configured on the API):
    BENCH_PRINCIPAL=0xabc python scripts/bench_gate.py
"""

import argparse
import hashlib
import os
import statistics
import sys
import time

import httpx

INCREMENT_COUNTER_PAYLOAD = "0x" + hashlib.sha3_256(b"incrementCounter()").digest()[:4].hex()


def get_token(
    keycloak_url: str,
    realm: str,
    client_id: str,
    client_secret: str,
    username: str,
    password: str,
) -> str:
    url = f"{keycloak_url.rstrip('/')}/realms/{realm}/protocol/openid-connect/token"
    r = httpx.post(
        url,
        data={
            "grant_type": "password",
            "client_id": client_id,
            "client_secret": client_secret,
            "username": username,
            "password": password,
        },
        timeout=30.0,
    )
    r.raise_for_status()
    return r.json()["access_token"]


def auth_headers() -> dict[str, str]:
    principal = os.environ.get("BENCH_PRINCIPAL")
    if principal:
        return {"X-Principal": principal}
    token = get_token(
        os.environ.get("KEYCLOAK_URL", "http://localhost:8080"),
        os.environ.get("KEYCLOAK_REALM", "hypnos"),
        os.environ.get("KEYCLOAK_CLIENT_ID", "hypnos-api"),
        os.environ.get("KEYCLOAK_CLIENT_SECRET", ""),
        os.environ.get("BENCH_USER", "testuser"),
        os.environ.get("BENCH_PASSWORD", "testpass"),
    )
    return {"Authorization": f"Bearer {token}"}


def percentile(sorted_values: list[float], q: float) -> float:
    index = max(int(len(sorted_values) * q) - 1, 0)
    return sorted_values[index]


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark gated execution")
    parser.add_argument("--num-calls", type=int, default=200, help="Gated executions to send")
    parser.add_argument(
        "--target",
        default=os.environ.get("BENCH_TARGET", "0x000000000000000000000000000000000000de30"),
        help="Target the capability is granted on",
    )
    parser.add_argument("--output", default="", help="Optional file for the summary")
    args = parser.parse_args()

    api_url = os.environ.get("API_URL", "http://localhost:8000").rstrip("/")
    headers = auth_headers()

    latencies: list[float] = []
    errors = 0
    with httpx.Client(base_url=api_url, headers=headers, timeout=30.0) as client:
        r = client.post(
            "/v1/ledger/capabilities",
            json={"target": args.target, "max_value": 0},
        )
        r.raise_for_status()
        capability_id = r.json()["id"]
        print(f"Granted {capability_id}; sending {args.num_calls} gated calls...")

        start_total = time.perf_counter()
        for _ in range(args.num_calls):
            t0 = time.perf_counter()
            r = client.post(
                f"/v1/ledger/capabilities/{capability_id}/execute",
                json={"target": args.target, "payload": INCREMENT_COUNTER_PAYLOAD, "value": 0},
            )
            elapsed = time.perf_counter() - t0
            if r.status_code == 200:
                latencies.append(elapsed)
            else:
                errors += 1
        total_elapsed = time.perf_counter() - start_total

    n = len(latencies)
    if n == 0:
        print("No successful gated calls.")
        return 1

    ordered = sorted(latencies)
    summary = (
        f"Gate benchmark (calls={n}, errors={errors})\n"
        f"  Throughput: {n / total_elapsed:.2f} calls/s\n"
        f"  Latency: p50={statistics.median(ordered) * 1000:.1f} ms, "
        f"p95={percentile(ordered, 0.95) * 1000:.1f} ms, "
        f"p99={percentile(ordered, 0.99) * 1000:.1f} ms\n"
        f"  Total time: {total_elapsed:.2f} s\n"
    )
    print(summary)

    if args.output:
        os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(summary)
        print(f"Wrote {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
