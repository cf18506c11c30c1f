"""
Dispatch Wrapper 单元测试

验证日志失败永不抛给调用方、诊断消息的延迟投递、按组件去抖以及递归保护。
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from polylog import AsyncSenderLogger, ConsoleLogger, MemLogger, current_root_logger, use_root_logger
from polylog import dispatch
from polylog.base import LoggerBase
from polylog.dispatch import FAILURE_MESSAGE, handle_logging_exceptions, report_diagnostic


def _raise(_: Any) -> Any:
    raise RuntimeError("filter exploded")


class ExplodingLogger(LoggerBase):
    def __init__(self, **opts: Any) -> None:
        super().__init__(**opts)
        self.calls = 0

    def _log_impl(self, payload: Any, fields: dict[str, Any]) -> None:
        self.calls += 1
        raise RuntimeError("sink exploded")


def _diagnostics(mem: MemLogger) -> list[dict[str, Any]]:
    return [m for m in mem.buf if m.get("message") == [FAILURE_MESSAGE]]


class TestFailureIsolation:
    """失败隔离测试"""

    async def test_log_never_raises(self, mem: MemLogger, tick) -> None:
        """sink 抛出异常时 log() 正常返回"""
        with use_root_logger(mem):
            ExplodingLogger().log({"level": "info", "message": ["hi"]})
            await tick()
        assert len(_diagnostics(mem)) == 1

    async def test_diagnostic_fields(self, mem: MemLogger, tick) -> None:
        """诊断消息标明出错的组件与原始异常"""
        failing = MemLogger(filter=_raise)
        with use_root_logger(mem):
            failing.log({"level": "info", "message": ["hi"]})
            assert mem.buf == []  # deferred to the next tick
            await tick()

        [diag] = _diagnostics(mem)
        assert diag["level"] == "error"
        assert diag["logger"] is failing
        assert isinstance(diag["exception"], RuntimeError)
        assert diag["application"] == "infrastructure"
        assert diag["subsystem"] == "polylog-error-handling"
        assert "timestamp" in diag

    async def test_filter_drop_emits_nothing(self, mem: MemLogger, tick) -> None:
        """filter 返回 None 时静默丢弃，不产生诊断"""
        sink = MemLogger(filter=lambda m: None)
        with use_root_logger(mem):
            sink.log({"level": "info", "message": ["dropped"]})
            await tick()
        assert sink.buf == []
        assert mem.buf == []


class TestDebounce:
    """诊断去抖测试"""

    async def test_tight_loop_reports_once(self, mem: MemLogger, tick) -> None:
        """同一组件在一次延迟投递前失败 100 次只报告一次"""
        failing = MemLogger(filter=_raise)
        with use_root_logger(mem):
            for _ in range(100):
                failing.log({"level": "info", "message": ["hi"]})
            await tick()
        assert len(_diagnostics(mem)) == 1

    async def test_distinct_components_report_separately(self, mem: MemLogger, tick) -> None:
        """不同组件各自报告"""
        with use_root_logger(mem):
            MemLogger(filter=_raise).log({"level": "info"})
            MemLogger(filter=_raise).log({"level": "info"})
            await tick()
        assert len(_diagnostics(mem)) == 2

    async def test_reports_again_after_delivery(self, mem: MemLogger, tick) -> None:
        """诊断投递后再次失败会重新报告"""
        failing = MemLogger(filter=_raise)
        with use_root_logger(mem):
            failing.log({"level": "info"})
            await tick()
            failing.log({"level": "info"})
            await tick()
        assert len(_diagnostics(mem)) == 2

    def test_without_event_loop_reports_immediately(self, mem: MemLogger) -> None:
        """没有运行中的事件循环时立即报告"""
        with use_root_logger(mem):
            MemLogger(filter=_raise).log({"level": "info"})
        assert len(_diagnostics(mem)) == 1

    def test_without_event_loop_tight_loop_reports_once(self, mem: MemLogger) -> None:
        """没有事件循环时，同一组件连续失败 100 次只报告一次"""
        failing = MemLogger(filter=_raise)
        with use_root_logger(mem):
            for _ in range(100):
                failing.log({"level": "info"})
        assert len(_diagnostics(mem)) == 1

    def test_without_event_loop_success_clears_debounce(self, mem: MemLogger) -> None:
        """没有事件循环时，组件成功记录一次后再失败会重新报告"""

        def flaky(message: dict[str, Any]) -> dict[str, Any]:
            if message.get("boom"):
                raise RuntimeError("filter exploded")
            return message

        logger = MemLogger(filter=flaky)
        with use_root_logger(mem):
            logger.log({"level": "info", "boom": True})
            logger.log({"level": "info", "boom": True})
            logger.log({"level": "info", "message": ["ok"]})
            logger.log({"level": "info", "boom": True})
        assert len(_diagnostics(mem)) == 2
        assert [m["message"] for m in logger.buf] == [["ok"]]

    def test_without_event_loop_window_expires(self, mem: MemLogger, monkeypatch: pytest.MonkeyPatch) -> None:
        """没有事件循环时，去抖窗口过期后再次报告"""
        now = [100.0]
        monkeypatch.setattr(dispatch, "_clock", lambda: now[0])
        failing = MemLogger(filter=_raise)
        with use_root_logger(mem):
            failing.log({"level": "info"})
            now[0] += dispatch.SYNC_DEBOUNCE_SECONDS / 2
            failing.log({"level": "info"})
            now[0] += dispatch.SYNC_DEBOUNCE_SECONDS
            failing.log({"level": "info"})
        assert len(_diagnostics(mem)) == 2


class TestRecursionGuard:
    """递归保护测试"""

    async def test_failing_root_is_not_reported_to_itself(self, tick) -> None:
        """根 logger 自身失败时不会无限递归"""
        root = ExplodingLogger()
        with use_root_logger(root):
            MemLogger(filter=_raise).log({"level": "info"})
            await tick(5)
        assert root.calls == 1

    async def test_sentinel_text_from_user_code_is_ordinary(self, mem: MemLogger, tick) -> None:
        """用户消息恰好等于哨兵文本时仍会报告失败"""
        failing = ExplodingLogger()
        with use_root_logger(mem):
            failing.log({"level": "info", "message": [FAILURE_MESSAGE]})
            await tick()
        [diag] = _diagnostics(mem)
        assert diag["logger"] is failing

    def test_broken_root_falls_back_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """诊断也无法投递时写入 stderr"""

        class Broken:
            def log(self, message: Any) -> None:
                raise RuntimeError("root is broken")

            def flush(self) -> None:
                return None

        with use_root_logger(Broken()):
            report_diagnostic({"level": "error", "message": ["boom"]})
        assert "Utter failure logging" in capsys.readouterr().err


class TestAsynchronousWork:
    """异步工作测试"""

    async def test_rejected_send_is_reported(self, mem: MemLogger, tick) -> None:
        """异步发送失败会被捕获并报告"""

        async def send(payload: Any) -> None:
            raise ConnectionError("unreachable")

        sender = AsyncSenderLogger(send)
        with use_root_logger(mem):
            sender.log({"level": "info", "message": ["hi"]})
            await sender.flush()
            await tick(5)

        [diag] = _diagnostics(mem)
        assert diag["logger"] is sender
        assert isinstance(diag["exception"], ConnectionError)

    async def test_awaitable_result_is_scheduled(self, tick) -> None:
        """返回的协程在事件循环上执行"""
        done = asyncio.Event()

        async def work() -> None:
            done.set()

        handle_logging_exceptions(object(), work)
        await asyncio.wait_for(done.wait(), timeout=1)

    def test_async_sink_outside_loop_is_reported(self, mem: MemLogger) -> None:
        """事件循环之外使用异步 sink 会被报告而不是抛出"""

        async def send(payload: Any) -> None:
            return None

        sender = AsyncSenderLogger(send)
        with use_root_logger(mem):
            sender.log({"level": "info"})
        [diag] = _diagnostics(mem)
        assert isinstance(diag["exception"], RuntimeError)


class TestRootLogger:
    """根 logger 解析测试"""

    def test_use_root_logger_restores_previous(self, mem: MemLogger) -> None:
        other = MemLogger()
        with use_root_logger(mem):
            with use_root_logger(other):
                assert current_root_logger() is other
            assert current_root_logger() is mem

    def test_fallback_is_console_logger(self) -> None:
        """未设置根 logger 时回退到 stderr 控制台"""
        root = current_root_logger()
        assert isinstance(root, ConsoleLogger)
        assert root.level == "info"
