"""Example batches bundled with the tool.

Enable them with `batches.example_batches: true` to try the runner and the
snapshot workflow without writing batches of your own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from batch_snapshot_tester.batch_registration import BatchRegistry
    from batch_snapshot_tester.run_execution import BatchContext

OWNER = "batch_snapshot_tester"

PASSING_BATCH = f"{OWNER}.passing"
FAILING_BATCH = f"{OWNER}.failing"
NESTED_BATCH = f"{OWNER}.nested"
PENDING_BATCH = f"{OWNER}.pending"
SNAPSHOT_BATCH = f"{OWNER}.snapshots"


def register_batches(registry: BatchRegistry) -> None:
    registry.register(PASSING_BATCH, _passing_batch, display_name="Passing examples")
    registry.register(FAILING_BATCH, _failing_batch, display_name="Failing examples")
    registry.register(NESTED_BATCH, _nested_batch, display_name="Nested suites")
    registry.register(PENDING_BATCH, _pending_batch, display_name="Pending and skipped tests")
    registry.register(
        SNAPSHOT_BATCH,
        _snapshot_batch,
        display_name="Snapshot examples",
        pre_selected=False,
    )


def _passing_batch(context: BatchContext) -> None:
    assertions = context.assertions

    def arithmetic() -> None:
        context.it("adds numbers", lambda: assertions.equal(1 + 1, 2))
        context.it("compares strings", lambda: assertions.equal("a".upper(), "A"))

    async def waits_before_asserting() -> None:
        await context.utils.pause(5)
        assertions.ok(True)

    context.describe("arithmetic", arithmetic)
    context.it("awaits an async test body", waits_before_asserting)


def _failing_batch(context: BatchContext) -> None:
    assertions = context.assertions

    def failures() -> None:
        context.it("reports an inequality", lambda: assertions.equal(2 + 2, 5))
        context.it("reports an explicit failure", lambda: assertions.fail("deliberate failure"))

    context.describe("failures", failures)


async def _nested_batch(context: BatchContext) -> None:
    state: dict[str, int] = {"calls": 0}
    # Registration may await setup before declaring suites.
    await context.utils.pause(1)

    def count_call() -> None:
        state["calls"] += 1

    def outer() -> None:
        context.before_each(count_call)

        def inner() -> None:
            context.it("sees the outer before_each", lambda: context.assertions.ok(state["calls"]))

        context.describe("inner", inner)
        context.it("runs after the inner suite is declared", lambda: None)

    context.describe("outer", outer)


def _pending_batch(context: BatchContext) -> None:
    def pending() -> None:
        context.it("has no body yet")
        context.it.skip("is skipped", lambda: context.assertions.fail("never runs"))

    context.describe("pending", pending)


def _snapshot_batch(context: BatchContext) -> None:
    assertions = context.assertions

    def documents() -> None:
        context.it(
            "matches a stored mapping",
            lambda: assertions.match_snapshot({"name": "example", "tags": ["a", "b"], "size": 3}),
        )
        context.it("matches a stored list", lambda: assertions.match_snapshot([1, 2, 3]))

    context.describe("documents", documents)
