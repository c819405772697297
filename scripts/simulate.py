"""
Rush Hour Simulation Script

Fires a burst of concurrent orders at one canteen, checks the kitchen
queue ordering (staff orders first, then oldest), then walks every order
through preparing, ready and completed and prints the day's stats.

Run from project root after scripts/seed.py:
    python scripts/simulate.py --tokens tokens.json --orders 40
"""

import argparse
import asyncio
import json
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 40
TAX_RATE = 0.05


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def build_order(canteen_id: int, menu: list[dict]) -> dict[str, Any]:
    lines = random.sample(menu, k=random.randint(1, min(3, len(menu))))
    items = [{"menuItem": item["id"], "quantity": random.randint(1, 3)} for item in lines]
    subtotal = sum(item["price"] * line["quantity"] for item, line in zip(lines, items))
    tax = round(subtotal * TAX_RATE, 2)
    return {
        "canteenId": canteen_id,
        "items": items,
        "subtotal": subtotal,
        "tax": tax,
        "total": round(subtotal + tax, 2),
        "paymentMode": random.choice(["UPI", "COD"]),
    }


async def place_order(
    client: httpx.AsyncClient,
    order_num: int,
    token: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post("/orders", json=payload, headers=bearer(token))
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": 0.0}

    elapsed = round(time.time() - start_time, 3)
    if response.status_code != 201:
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}

    data = response.json()
    return {
        "order_num": order_num,
        "success": True,
        "order_id": data["id"],
        "priority": data["priority"],
        "total": data["total"],
        "time": elapsed,
    }


async def advance_order(client: httpx.AsyncClient, token: str, order_id: int) -> bool:
    for status in ("preparing", "ready", "completed"):
        response = await client.patch(
            f"/orders/{order_id}/status", json={"status": status}, headers=bearer(token)
        )
        if response.status_code != 200:
            print(f"   ❌ Order #{order_id} -> {status}: {response.text[:100]}")
            return False
    return True


def queue_is_ordered(queue: list[dict]) -> bool:
    ranks = [(0 if o["priority"] == "high" else 1, o["createdAt"], o["updatedAt"], o["id"]) for o in queue]
    return ranks == sorted(ranks)


async def run_simulation(base_url: str, tokens: dict[str, str], canteen_id: int, num_orders: int) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {base_url} (canteen {canteen_id})")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        health = await client.get("/health")
        print(f"\n🩺 Health: {health.json().get('status')}")

        response = await client.get("/menu", params={"canteenId": canteen_id}, headers=bearer(tokens["student"]))
        response.raise_for_status()
        menu = response.json()
        if not menu:
            print("❌ Canteen has no available menu items")
            return {"total": num_orders, "successful": 0}

        print("\n🚀 Firing orders...\n")
        start_time = time.time()
        tasks = []
        for i in range(num_orders):
            who = "staff" if random.random() < 0.25 else "student"
            tasks.append(place_order(client, i + 1, tokens[who], build_order(canteen_id, menu)))
        results = await asyncio.gather(*tasks)
        placing_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        queue = (await client.get("/orders/kitchen/queue", headers=bearer(tokens["kitchen"]))).json()
        print(f"🍳 Kitchen queue: {len(queue)} active, ordering {'✅ ok' if queue_is_ordered(queue) else '❌ WRONG'}")

        print("\n🔄 Advancing orders through the kitchen...\n")
        advanced = await asyncio.gather(
            *(advance_order(client, tokens["kitchen"], r["order_id"]) for r in successful)
        )

        stats = (await client.get(
            "/orders/admin/stats", params={"canteenId": canteen_id}, headers=bearer(tokens["admin"])
        )).json()

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Placed: {len(successful)}/{num_orders} in {placing_time}s")
    print(f"❌ Failed: {len(failed)}/{num_orders}")
    print(f"⚡ High priority: {len([r for r in successful if r['priority'] == 'high'])}")
    print(f"🏁 Completed: {sum(advanced)}/{len(successful)}")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Average Response: {avg_time}s")
        print(f"   💰 Placed Revenue: ₹{sum(r['total'] for r in successful):.2f}")

    print(f"\n📅 Today: {stats.get('todayOrders')} orders, ₹{stats.get('totalRevenue', 0):.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "completed": sum(advanced),
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--tokens", default="tokens.json", help="Token file written by scripts/seed.py")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    args = parser.parse_args()

    with open(args.tokens) as f:
        seeded = json.load(f)

    summary = asyncio.run(
        run_simulation(args.base_url, seeded["tokens"], seeded["canteenId"], args.orders)
    )
    sys.exit(0 if summary["successful"] else 1)
