"""Order fulfillment workflow with conditional steps and progress hooks."""

import asyncio
import logging

from flux_engine import Engine, EngineHooks, InMemoryStorage, create_workflow


def validate_order(ctx):
    if not ctx.input.get("items"):
        raise ValueError("Order has no items")
    ctx.data["total"] = sum(item["price"] * item["qty"] for item in ctx.input["items"])


async def reserve_stock(ctx):
    await asyncio.sleep(0.05)
    return {"reservation_id": f"res-{ctx.input['order_id']}"}


async def apply_discount(ctx):
    ctx.data["total"] = round(ctx.data["total"] * 0.9, 2)


async def charge_card(ctx):
    await asyncio.sleep(0.05)
    ctx.data["charged"] = ctx.data["total"]


order_flow = (
    create_workflow("order-fulfillment")
    .validate(lambda payload: isinstance(payload, dict) and "order_id" in payload)
    .step("validate", validate_order)
    .step("reserve", reserve_stock, retries=3, timeout_ms=1000)
    .step("discount", apply_discount, when=lambda ctx: ctx.data["total"] > 100)
    .commit("charge", charge_card, retries=1, timeout_ms=5000)
)


async def main():
    logging.basicConfig(level=logging.INFO)
    hooks = EngineHooks(
        step_complete=lambda name, record: print(f"  ✓ {name}"),
        workflow_complete=lambda record: print(f"Order done: {record.data}"),
    )
    engine = Engine(storage=InMemoryStorage(), hooks=hooks)
    await engine.execute(
        order_flow,
        {
            "order_id": "42",
            "items": [{"price": 60.0, "qty": 2}, {"price": 5.0, "qty": 1}],
        },
    )


if __name__ == "__main__":
    asyncio.run(main())
