"""Run the overstay anomaly sweep through the admin API.

Run once, or pass ``--interval SECONDS`` to sweep on a timer.
"""

from __future__ import annotations

import argparse
import os

import anyio
import httpx


async def sweep_once(
    client: httpx.AsyncClient, *, threshold_hours: float | None = None
) -> dict[str, object]:
    """Trigger one sweep.

    Parameters
    ----------
    client : httpx.AsyncClient
        Authenticated admin API client.
    threshold_hours : float | None, default=None
        Optional threshold override.

    Returns
    -------
    dict[str, object]
        Sweep report from the API.
    """
    payload: dict[str, float] = {}
    if threshold_hours is not None:
        payload["threshold_hours"] = threshold_hours
    response = await client.post("/v1/admin/anomalies/sweep", json=payload)
    response.raise_for_status()
    return response.json()


async def main(interval: float | None, threshold_hours: float | None) -> None:
    """Sweep once, or repeatedly every ``interval`` seconds.

    Parameters
    ----------
    interval : float | None
        Seconds between sweeps. None runs a single sweep.
    threshold_hours : float | None
        Optional threshold override.

    Returns
    -------
    None
        Prints a short summary per sweep.
    """
    base_url = os.environ.get("CUSTODY_GATE_BASE_URL", "http://127.0.0.1:8000")
    admin_token = os.environ.get("CUSTODY_GATE_ADMIN_TOKEN")
    if not admin_token:
        raise SystemExit("CUSTODY_GATE_ADMIN_TOKEN is required")

    headers = {"Authorization": f"Bearer {admin_token}"}
    async with httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        timeout=30.0,
    ) as client:
        while True:
            report = await sweep_once(client, threshold_hours=threshold_hours)
            print(
                f"flagged={report['flagged_count']} "
                f"resolved={report['resolved_count']} "
                f"errors={len(report['errors'])}"
            )
            for error in report["errors"]:
                print(f"  {error}")
            if interval is None:
                return
            await anyio.sleep(interval)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--interval", type=float, default=None)
    parser.add_argument("--threshold-hours", type=float, default=None)
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    anyio.run(main, args.interval, args.threshold_hours)
