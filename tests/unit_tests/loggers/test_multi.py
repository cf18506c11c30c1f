"""
MultiLogger 单元测试

扇出到多个子 logger，单个子 logger 失败不影响其它子 logger。
"""

from __future__ import annotations

from typing import Any

import pytest

from polylog import FlushError, MemLogger, MultiLogger, use_root_logger
from polylog.dispatch import FAILURE_MESSAGE


class Throwing:
    """Logger that fails synchronously on every call."""

    def __init__(self) -> None:
        self.calls = 0

    def log(self, message: Any) -> None:
        self.calls += 1
        raise RuntimeError("child exploded")

    async def flush(self) -> None:
        return None


class FlushRecorder(MemLogger):
    def __init__(self, fail: bool = False, **opts: Any) -> None:
        super().__init__(**opts)
        self.fail = fail
        self.flushed = False

    async def flush(self) -> None:
        self.flushed = True
        if self.fail:
            raise OSError("disk full")


class TestFanOut:
    """扇出测试"""

    async def test_failing_child_does_not_affect_siblings(self, mem: MemLogger, tick) -> None:
        """三个子 logger 中一个总是抛出，其余两个按顺序收到全部 100 条消息"""
        first, second, bad = MemLogger(), MemLogger(), Throwing()
        root = MultiLogger({"first": first, "bad": bad, "second": second})

        with use_root_logger(mem):
            for i in range(100):
                root.log({"level": "info", "message": [i]})
            await tick()

        expected = [[i] for i in range(100)]
        assert [m["message"] for m in first.buf] == expected
        assert [m["message"] for m in second.buf] == expected
        assert bad.calls == 100

        diagnostics = [m for m in mem.buf if m.get("message") == [FAILURE_MESSAGE]]
        assert len(diagnostics) == 1
        assert diagnostics[0]["logger"] is bad

    def test_root_pipeline_applies_before_children(self) -> None:
        """根 logger 的级别与默认字段先于子 logger 生效"""
        child = MemLogger()
        root = MultiLogger({"default": child}, level="info", default_fields={"app": "shop"})
        root.log({"level": "debug", "message": ["dropped"]})
        root.log({"level": "info", "message": ["kept"]})
        assert child.buf == [{"level": "info", "message": ["kept"], "app": "shop"}]

    def test_children_apply_own_level(self) -> None:
        loud, quiet = MemLogger(), MemLogger(level="error")
        root = MultiLogger({"loud": loud, "quiet": quiet})
        root.log({"level": "warn"})
        assert len(loud.buf) == 1
        assert quiet.buf == []

    def test_accepts_pairs(self) -> None:
        child = MemLogger()
        root = MultiLogger([("default", child)])
        assert root.loggers == {"default": child}

    def test_children_are_mutable(self) -> None:
        """子 logger 可以随时增删替换"""
        a, b = MemLogger(), MemLogger()
        root = MultiLogger({"a": a})
        root.loggers["b"] = b
        root.log({"level": "info"})
        del root.loggers["a"]
        root.log({"level": "info"})
        root.loggers = {}
        root.log({"level": "info"})
        assert len(a.buf) == 1
        assert len(b.buf) == 2

    def test_snapshot_taken_per_call(self) -> None:
        """派发过程中对子 logger 的修改不影响本次派发"""
        late = MemLogger()
        root = MultiLogger()

        class Mutating(MemLogger):
            def _log_impl(self, payload: Any, fields: dict[str, Any]) -> None:
                super()._log_impl(payload, fields)
                root.loggers.pop("early", None)
                root.loggers["late"] = late

        early = MemLogger()
        mutating = Mutating()
        root.loggers.update({"mutating": mutating, "early": early})

        root.log({"level": "info", "message": ["first"]})
        root.log({"level": "info", "message": ["second"]})

        assert [m["message"] for m in early.buf] == [["first"]]
        assert [m["message"] for m in late.buf] == [["second"]]
        assert len(mutating.buf) == 2

    def test_derive_shares_children(self) -> None:
        child = MemLogger()
        root = MultiLogger({"default": child}, default_fields={"a": 1})
        derived = root.derive(default_fields={"b": 2})
        derived.log({"level": "info"})
        assert derived.loggers is root.loggers
        assert child.buf == [{"level": "info", "a": 1, "b": 2}]


class TestFlush:
    """flush 聚合测试"""

    async def test_flushes_all_children(self) -> None:
        a, b = FlushRecorder(), FlushRecorder()
        await MultiLogger({"a": a, "b": b}).flush()
        assert a.flushed and b.flushed

    async def test_failure_collects_all(self) -> None:
        """一个子 logger flush 失败时其它子 logger 仍然完成 flush"""
        good, bad = FlushRecorder(), FlushRecorder(fail=True)
        root = MultiLogger({"bad": bad, "good": good})

        with pytest.raises(FlushError) as excinfo:
            await root.flush()

        assert good.flushed and bad.flushed
        failures = excinfo.value.details["failures"]
        assert list(failures) == ["bad"]
        assert isinstance(failures["bad"], OSError)
        assert excinfo.value.code == "FLUSH_FAILED"

    async def test_synchronous_flush_supported(self) -> None:
        """子 logger 的 flush 可以是同步的"""

        class SyncFlush:
            flushed = False

            def log(self, message: Any) -> None:
                return None

            def flush(self) -> None:
                self.flushed = True

        child = SyncFlush()
        await MultiLogger({"sync": child}).flush()
        assert child.flushed

    async def test_nested(self) -> None:
        leaf = FlushRecorder()
        root = MultiLogger({"inner": MultiLogger({"leaf": leaf})})
        root.log({"level": "info", "message": ["deep"]})
        await root.flush()
        assert leaf.flushed
        assert leaf.buf[0]["message"] == ["deep"]
