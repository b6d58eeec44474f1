from etwscan.core.address import Address
from etwscan.scan.driver import EtwConsumerScan, enumerate_all
from etwscan.scan.layouts import get_layout
from etwscan.scan.session import SessionScanner

L1, L2, L3 = 0xFFFFC80FA1B20000, 0xFFFFC80FA1B30000, 0xFFFFC80FA1B40000
N1, N2 = 0xFFFFC80FB0000000, 0xFFFFC80FB0000100
P1, P2 = 0xFFFFC80F12340080, 0xFFFFC80F12350080


def _populate(target):
    target.add_logger(L1, 0x2, "EventLog-Application", [(N1, P1), (N2, P2)])
    target.add_logger(L2, 0x3, "DiagLog")
    target.add_process(P1, 1488, "svchost.exe")
    target.add_process(P2, 2960, "MsMpEng.exe")


def test_aggregate_counters(target):
    _populate(target)
    scanner = SessionScanner(target.port, get_layout())

    report = enumerate_all([(Address(L1), 2, "EventLog-Application"), (Address(L2), 3, "DiagLog")], scanner)

    assert report.total_sessions == 2
    assert report.sessions_with_consumers == 1
    assert report.total_consumers == 2
    assert report.total_resolved_consumers == 2
    assert report.sessions_with_resolved_consumers == 1
    assert [s.logger.name for s in report.sessions] == ["EventLog-Application", "DiagLog"]


def test_run_discovers_loggers_from_strdump(target):
    _populate(target)

    report = EtwConsumerScan(target.port).run()

    assert [s.logger.logger_id for s in report.sessions] == [2, 3]
    assert [c.identity.image_name for c in report.sessions[0].consumers] == ["svchost.exe", "MsMpEng.exe"]


def test_malformed_session_does_not_sink_the_run(target):
    _populate(target)
    contexts = [(L1, 2, "EventLog-Application"), (L3, 9, "torn-down"), (L2, 3, "DiagLog")]

    report = EtwConsumerScan(target.port).run(contexts)

    assert report.total_sessions == 3
    assert report.sessions[1].error
    assert report.sessions[1].consumers == []
    assert report.total_consumers == 2


def test_unresolved_consumers_count_but_are_not_resolved(target):
    target.add_logger(L1, 2, "s", [(N1, P1), (N2, P2)])
    target.add_process(P1, 1488, "svchost.exe")

    report = EtwConsumerScan(target.port).run()

    assert report.total_consumers == 2
    assert report.total_resolved_consumers == 1


def test_no_loggers_gives_empty_report(target):
    report = EtwConsumerScan(target.port).run()
    assert report.total_sessions == 0
    assert report.sessions == []


def test_repeated_runs_are_identical(target):
    _populate(target)

    first = EtwConsumerScan(target.port).run().model_dump_json()
    second = EtwConsumerScan(target.port).run().model_dump_json()
    scan = EtwConsumerScan(target.port)
    third = scan.run().model_dump_json()
    fourth = scan.run().model_dump_json()

    assert first == second == third == fourth


def test_bad_context_triples_become_error_sessions(target):
    _populate(target)
    contexts = [("not-an-address", 1, "bad"), (-1, 1, "bad"), (L1, 2, "EventLog-Application")]

    report = EtwConsumerScan(target.port).run(contexts)

    assert report.total_sessions == 3
    for session in report.sessions[:2]:
        assert session.error
        assert session.logger.address == 0
        assert session.logger.logger_id == 1
        assert session.logger.name == "bad"
        assert session.consumers == []
    assert report.sessions[2].error is None
    assert report.total_consumers == 2
