"""Tests for tier1_runtime modules (policy, outcome, serialize, delivery)."""
from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import BaseModel

from either_adapter.tier0_core.errors import ConfigurationError, DecodeError
from either_adapter.tier0_core.http import HTTP, StatusRange
from either_adapter.tier1_runtime.delivery import (
    DeliveryContext,
    ExecutorDelivery,
    ImmediateDelivery,
    LoopDelivery,
    QueueDelivery,
    default_delivery,
)
from either_adapter.tier1_runtime.outcome import (
    CallbackSink,
    Failure,
    Left,
    OutcomeSlot,
    Right,
    deliver,
)
from either_adapter.tier1_runtime.policy import (
    Branch,
    BranchPolicy,
    classify,
    describe_undetermined,
)
from either_adapter.tier1_runtime.serialize import (
    RawDecoder,
    TextDecoder,
    TypeDecoder,
    decoder_for,
)


# ── policy ─────────────────────────────────────────────────────────────────

class TestBranchPolicy:
    def test_default_ranges(self):
        policy = BranchPolicy.default()
        assert policy.left_codes == frozenset()
        assert policy.right_codes == frozenset()
        assert policy.left_ranges == {StatusRange.SUCCESS, StatusRange.REDIRECT}
        assert policy.right_ranges == {StatusRange.CLIENT_ERROR, StatusRange.SERVER_ERROR}

    def test_iterables_normalized_to_frozensets(self):
        policy = BranchPolicy(left_codes=[200, 200, 201], right_ranges=(StatusRange.CLIENT_ERROR,))
        assert policy.left_codes == frozenset({200, 201})
        assert isinstance(policy.right_ranges, frozenset)
        assert hash(policy) == hash(BranchPolicy(left_codes={201, 200}, right_ranges=[StatusRange.CLIENT_ERROR]))

    def test_explicit_keeps_default_ranges(self):
        policy = BranchPolicy.explicit(left=[200, 201])
        assert policy.left_codes == {200, 201}
        assert policy.right_ranges == {StatusRange.CLIENT_ERROR, StatusRange.SERVER_ERROR}

    def test_empty_policy_fails_validation(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BranchPolicy().validate()
        assert str(exc_info.value) == "Invocation policy has no bound for status code checking."

    def test_explicit_with_everything_empty_fails_validation(self):
        with pytest.raises(ConfigurationError):
            BranchPolicy.explicit(left_ranges=(), right_ranges=()).validate()

    def test_single_field_is_enough(self):
        assert BranchPolicy(right_codes={500}).validate().right_codes == {500}


class TestClassify:
    def test_explicit_left_code(self):
        assert classify(BranchPolicy.explicit(left=[422], right=[200]), 422) is Branch.LEFT

    def test_explicit_right_code(self):
        assert classify(BranchPolicy.explicit(left=[200], right=[422, 401]), 401) is Branch.RIGHT

    def test_left_code_wins_over_right_code(self):
        assert classify(BranchPolicy(left_codes={200}, right_codes={200}), 200) is Branch.LEFT

    def test_both_explicit_ignores_ranges(self):
        policy = BranchPolicy.explicit(left=[200], right=[401])
        assert classify(policy, 201) is Branch.UNDETERMINED
        assert classify(policy, 500) is Branch.UNDETERMINED

    @pytest.mark.parametrize("code", [200, 250, 302, 399])
    def test_default_left_ranges(self, code):
        assert classify(BranchPolicy.default(), code) is Branch.LEFT

    @pytest.mark.parametrize("code", [400, 422, 500, 599])
    def test_default_right_ranges(self, code):
        assert classify(BranchPolicy.default(), code) is Branch.RIGHT

    @pytest.mark.parametrize("code", [100, 199, 600, 999])
    def test_default_outside_ranges(self, code):
        assert classify(BranchPolicy.default(), code) is Branch.UNDETERMINED

    def test_left_explicit_right_falls_back_to_ranges(self):
        policy = BranchPolicy.explicit(left=[200, 201])
        assert classify(policy, 500) is Branch.RIGHT
        assert classify(policy, 422) is Branch.RIGHT

    def test_left_ranges_skipped_once_left_is_explicit(self):
        # 200 is in SUCCESS, but the left side only accepts 201 now.
        policy = BranchPolicy.explicit(left=[201])
        assert classify(policy, 200) is Branch.UNDETERMINED

    def test_right_explicit_left_falls_back_to_ranges(self):
        policy = BranchPolicy.explicit(right=[HTTP.UNPROCESSABLE_ENTITY])
        assert classify(policy, 204) is Branch.LEFT
        assert classify(policy, 500) is Branch.UNDETERMINED

    def test_describe_ambiguous(self):
        policy = BranchPolicy.explicit(left=[200], right=[401])
        assert (
            describe_undetermined(policy, 201)
            == "Either left nor right does not contain response status code: 201"
        )

    def test_describe_no_match(self):
        assert describe_undetermined(BranchPolicy.default(), 600) == "Cannot determine status code: 600"


# ── outcome ────────────────────────────────────────────────────────────────

class TestOutcome:
    def test_variant_predicates(self):
        assert Left(1).is_left() and not Left(1).is_right()
        assert Right(None).is_right()
        assert Failure(ValueError("x")).is_failure()

    def test_fold_selects_handler(self):
        handlers = (lambda v: ("L", v), lambda v: ("R", v), lambda e: ("E", str(e)))
        assert Left(1).fold(*handlers) == ("L", 1)
        assert Right(2).fold(*handlers) == ("R", 2)
        assert Failure(ValueError("boom")).fold(*handlers) == ("E", "boom")

    def test_unwrap(self):
        assert Left("x").unwrap() == "x"
        assert Right(None).unwrap() is None
        with pytest.raises(ValueError, match="boom"):
            Failure(ValueError("boom")).unwrap()

    def test_slot_accepts_first_outcome_only(self):
        slot = OutcomeSlot()
        assert not slot.is_set
        assert slot.try_set(Left(1)) is True
        assert slot.try_set(Failure(RuntimeError("late"))) is False
        assert slot.get() == Left(1)

    def test_slot_single_winner_across_threads(self):
        slot = OutcomeSlot()
        results: list[bool] = []
        barrier = threading.Barrier(8)

        def offer(i: int) -> None:
            barrier.wait()
            results.append(slot.try_set(Right(i)))

        threads = [threading.Thread(target=offer, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 1

    def test_callback_sink_dispatch(self):
        seen: list[object] = []
        sink = CallbackSink(on_left=seen.append, on_right=seen.append, on_exception=seen.append)
        deliver(Left("a"), sink)
        deliver(Right("b"), sink)
        assert seen == ["a", "b"]

    def test_callback_sink_unhandled_branch_raises(self):
        sink = CallbackSink(on_left=lambda v: None)
        with pytest.raises(RuntimeError, match="Unhandled right outcome"):
            sink.on_right({"desc": "x"})
        with pytest.raises(KeyError):
            sink.on_exception(KeyError("missing"))


# ── serialize ──────────────────────────────────────────────────────────────

class Problem(BaseModel):
    desc: str


class TestDecoders:
    def test_type_decoder_model(self):
        problem = TypeDecoder(Problem).decode(b'{"desc": "Validation error."}')
        assert problem == Problem(desc="Validation error.")

    def test_type_decoder_builtin_container(self):
        assert TypeDecoder(list[int]).decode(b"[1, 2, 3]") == [1, 2, 3]

    def test_malformed_json_raises_decode_error(self):
        with pytest.raises(DecodeError) as exc_info:
            TypeDecoder(Problem).decode(b"abc")
        assert "Problem" in str(exc_info.value)
        assert exc_info.value.__cause__ is not None

    def test_wrong_shape_raises_decode_error(self):
        with pytest.raises(DecodeError) as exc_info:
            TypeDecoder(Problem).decode(b"123")
        assert exc_info.value.metadata["fields"]

    def test_raw_and_text(self):
        assert RawDecoder().decode(b"\x00\x01") == b"\x00\x01"
        assert TextDecoder().decode("héllo".encode()) == "héllo"
        with pytest.raises(DecodeError):
            TextDecoder().decode(b"\xff\xfe\xfd")

    def test_decoder_for(self):
        assert isinstance(decoder_for(bytes), RawDecoder)
        assert isinstance(decoder_for(str), TextDecoder)
        decoder = decoder_for(Problem)
        assert isinstance(decoder, TypeDecoder)
        assert decoder.type is Problem


# ── delivery ───────────────────────────────────────────────────────────────

class TestDelivery:
    def test_immediate_runs_inline(self):
        ran: list[str] = []
        ImmediateDelivery().execute(lambda: ran.append(threading.current_thread().name))
        assert ran == [threading.current_thread().name]

    def test_contexts_satisfy_protocol(self):
        assert isinstance(ImmediateDelivery(), DeliveryContext)
        assert isinstance(QueueDelivery(), DeliveryContext)

    def test_queue_runs_on_draining_thread(self):
        delivery = QueueDelivery()
        ran_on: list[str] = []
        worker = threading.Thread(
            target=lambda: delivery.execute(lambda: ran_on.append(threading.current_thread().name)),
            name="producer",
        )
        worker.start()
        worker.join()
        assert ran_on == []
        assert delivery.pending == 1
        assert delivery.drain(timeout=1.0) == 1
        assert ran_on == [threading.current_thread().name]

    def test_queue_drain_times_out(self):
        assert QueueDelivery().drain(timeout=0.01) == 0

    def test_queue_run_pending(self):
        delivery = QueueDelivery()
        ran: list[int] = []
        for i in range(3):
            delivery.execute(lambda i=i: ran.append(i))
        assert delivery.run_pending() == 3
        assert ran == [0, 1, 2]
        assert delivery.run_pending() == 0

    def test_executor_delivery(self):
        done = threading.Event()
        with ThreadPoolExecutor(max_workers=1) as pool:
            ExecutorDelivery(pool).execute(done.set)
            assert done.wait(1.0)

    def test_default_outside_loop_is_immediate(self):
        assert isinstance(default_delivery(), ImmediateDelivery)

    @pytest.mark.asyncio
    async def test_default_inside_loop_posts_to_loop(self):
        delivery = default_delivery()
        assert isinstance(delivery, LoopDelivery)
        assert delivery.loop is asyncio.get_running_loop()

        fut = asyncio.get_running_loop().create_future()
        threading.Thread(target=lambda: delivery.execute(lambda: fut.set_result("ok"))).start()
        assert await asyncio.wait_for(fut, timeout=1.0) == "ok"
