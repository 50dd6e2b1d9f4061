"""Example showing a failed step being resumed once its dependency recovers."""

import asyncio

from flux_engine import Engine, SQLiteStorage, create_workflow

API_STATE = {"down": True}


async def prepare(ctx):
    ctx.data["step1"] = "Done"


async def call_api(ctx):
    if API_STATE["down"]:
        raise RuntimeError("503 Service Unavailable")
    ctx.data["apiResult"] = "Success from API"


async def publish(ctx):
    print(f"Publishing result: {ctx.data['apiResult']}")


workflow = (
    create_workflow("resilient-api-call")
    .input(dict)
    .step("step-1", prepare)
    .step("step-2", call_api, retries=2, timeout_ms=2000)
    .commit("step-3", publish)
    .build()
)


async def main():
    engine = Engine(storage=SQLiteStorage("flux-guide.db"))

    record = await engine.execute(workflow, {"request_id": "req-1"})
    print(f"First run {record.id}: {record.status.value} ({record.error})")

    API_STATE["down"] = False
    record = await engine.retry_step(workflow, record.id, "step-2")
    print(f"After retry: {record.status.value}, data={record.data}")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
