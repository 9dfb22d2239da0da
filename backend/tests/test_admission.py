"""
Tests for export admission control
Memory is checked before queue depth, and queue depth before input shape
"""
import asyncio
import pytest

from pdf_export.core.exceptions import InvalidInputError, QueueFullError, ServerOverloadedError
from pdf_export.services.admission import AdmissionController
from pdf_export.services.execution_queue import ExecutionQueue
from pdf_export.services.resource_monitor import ResourceMonitor

from fakes import fixed_sampler, make_payload


def _monitor(rss_mb: float) -> ResourceMonitor:
    return ResourceMonitor(
        soft_limit_mb=600,
        warning_limit_mb=700,
        hard_limit_mb=800,
        sampler=fixed_sampler(rss_mb),
        collect_hook=None,
    )


class TestAdmission:
    """Test admission decisions"""

    def test_admits_valid_payload(self):
        controller = AdmissionController(_monitor(100), ExecutionQueue(), max_queue_depth=3)
        decision = controller.try_admit(make_payload(pages=2))

        assert decision.queue_position == 1
        assert decision.render_spec.total_pages == 2

    def test_overloaded_rejected_even_with_empty_queue(self):
        controller = AdmissionController(_monitor(801), ExecutionQueue(), max_queue_depth=3)

        with pytest.raises(ServerOverloadedError) as exc_info:
            controller.try_admit(make_payload())

        assert exc_info.value.code == "SERVER_OVERLOADED"
        assert exc_info.value.details["memory_usage"]["rss_mb"] == 801

    def test_hard_limit_is_exclusive(self):
        controller = AdmissionController(_monitor(800), ExecutionQueue(), max_queue_depth=3)
        assert controller.try_admit(make_payload()).queue_position == 1

    def test_overload_wins_over_invalid_input(self):
        controller = AdmissionController(_monitor(900), ExecutionQueue(), max_queue_depth=3)
        with pytest.raises(ServerOverloadedError):
            controller.try_admit({"pages": []})

    def test_queue_full_rejected_with_low_memory(self):
        async def scenario():
            queue = ExecutionQueue(max_concurrent=1)
            gate = asyncio.Event()
            # one running plus three waiting
            for _ in range(4):
                queue.submit(gate.wait)
            controller = AdmissionController(_monitor(50), queue, max_queue_depth=3)

            with pytest.raises(QueueFullError) as exc_info:
                controller.try_admit(make_payload())
            gate.set()
            await queue.join()
            return exc_info.value

        error = asyncio.run(scenario())
        assert error.code == "QUEUE_FULL"
        assert error.details == {"queue_length": 3}

    def test_queue_position_counts_waiting_jobs(self):
        async def scenario():
            queue = ExecutionQueue(max_concurrent=1)
            gate = asyncio.Event()
            for _ in range(3):
                queue.submit(gate.wait)
            controller = AdmissionController(_monitor(50), queue, max_queue_depth=3)
            decision = controller.try_admit(make_payload())
            gate.set()
            await queue.join()
            return decision

        assert asyncio.run(scenario()).queue_position == 3

    @pytest.mark.parametrize("payload", [None, [], "pages", {}, {"pages": []}, {"pages": "abc"}])
    def test_missing_or_empty_pages(self, payload):
        controller = AdmissionController(_monitor(100), ExecutionQueue(), max_queue_depth=3)

        with pytest.raises(InvalidInputError) as exc_info:
            controller.try_admit(payload)

        assert exc_info.value.code == "INVALID_INPUT"
        assert exc_info.value.message == "Invalid or empty project state."

    def test_malformed_payload_lists_errors(self):
        controller = AdmissionController(_monitor(100), ExecutionQueue(), max_queue_depth=3)
        payload = make_payload(pages=1, canvasWidth=-5)

        with pytest.raises(InvalidInputError) as exc_info:
            controller.try_admit(payload)

        errors = exc_info.value.details["errors"]
        assert any(error.startswith("canvasWidth") for error in errors)

    def test_sample_is_recorded(self):
        monitor = _monitor(123)
        controller = AdmissionController(monitor, ExecutionQueue(), max_queue_depth=3)
        controller.try_admit(make_payload())
        assert monitor.last_sample.rss_mb == 123

    def test_null_panel_list_is_admitted(self):
        controller = AdmissionController(_monitor(100), ExecutionQueue(), max_queue_depth=3)
        payload = make_payload(pages=2)
        payload["pages"][0]["panelStates"] = None

        decision = controller.try_admit(payload)

        assert decision.render_spec.pages[0].panel_states == []
        assert decision.render_spec.total_pages == 2

    def test_admission_never_collects_garbage(self):
        collections = []
        monitor = ResourceMonitor(
            soft_limit_mb=600,
            warning_limit_mb=700,
            hard_limit_mb=800,
            sampler=fixed_sampler(650),
            collect_hook=lambda: collections.append(1),
        )
        controller = AdmissionController(monitor, ExecutionQueue(), max_queue_depth=3)

        controller.try_admit(make_payload())

        assert collections == []
        assert monitor.last_sample.rss_mb == 650
