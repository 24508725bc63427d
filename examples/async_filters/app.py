"""Async filters -- filters that await I/O.

Demonstrates ``compile_async`` with coroutine filters. Placeholders are
rendered concurrently, so two lookups that each take 50ms finish in about
50ms, not 100ms. Filter chains still run left to right.

Run:
    python app.py
"""

import asyncio
import time

import formatr
from formatr import async_filter

# -- Simulated async data sources ----------------------------------------

USERS = {1: "ada lovelace", 2: "grace hopper"}
ORDERS = {1: 3, 2: 12}


@async_filter(arity=0)
async def user_name(user_id: int) -> str:
    """Simulate a database lookup."""
    await asyncio.sleep(0.05)
    return USERS[int(user_id)]


@async_filter(arity=0)
async def order_count(user_id: int) -> int:
    """Simulate an API call."""
    await asyncio.sleep(0.05)
    return ORDERS[int(user_id)]


# -- Template setup -------------------------------------------------------

template = formatr.compile_async(
    "{id|user_name|title} has {id|order_count|plural:order,orders}",
    filters={"user_name": user_name, "order_count": order_count},
)


async def render_all() -> list[str]:
    return [await template.render(id=user_id) for user_id in sorted(USERS)]


def main() -> None:
    start = time.perf_counter()
    for line in asyncio.run(render_all()):
        print(line)
    print(f"rendered in {time.perf_counter() - start:.2f}s")

    # Async filters are rejected by the sync compiler
    try:
        formatr.compile("{id|user_name}", filters={"user_name": user_name})
    except formatr.AsyncFilterError as err:
        print(err.format_compact())


if __name__ == "__main__":
    main()
