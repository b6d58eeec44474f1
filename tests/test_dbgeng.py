import pytest

from etwscan.core.address import Address
from etwscan.scan.driver import EtwConsumerScan
from etwscan.target.dbgeng import DbgEngPort
from etwscan.target.port import MemoryReadError

LOGGER = 0xFFFFC80FA1B20000
NODE = 0xFFFFC80FB0000000
EPROCESS = 0xFFFFC80F12345080


class FakeDbg:
    """Duck-typed stand-in for a Pybag debugger object."""

    def __init__(self, outputs, memory=None):
        self.outputs = outputs
        self.memory = memory or {}
        self.commands = []

    def cmd(self, cmdline, quiet=True):
        self.commands.append(cmdline)
        if cmdline not in self.outputs:
            raise RuntimeError(f"Error: {cmdline}")
        return self.outputs[cmdline]

    def read(self, addr, size):
        if addr not in self.memory:
            raise OSError("Memory access error")
        return self.memory[addr][:size]


OUTPUTS = {
    "!wmitrace.strdump": "    Logger Id 0x24 @ 0xFFFFC80FA1B20000 Named 'EventLog-System'\n",
    f"dt nt!_WMI_LOGGER_CONTEXT 0x{LOGGER:x}": (
        "nt!_WMI_LOGGER_CONTEXT\n"
        "   +0x000 LoggerId         : 0x24\n"
        "   +0x158 Consumers        : _LIST_ENTRY [ 0xffffc80f`b0000000 - 0xffffc80f`b0000000 ]\n"
        "   +0x168 NumConsumers     : 0n1\n"
    ),
    f"dt nt!_ETW_REALTIME_CONSUMER 0x{NODE:x}": (
        "nt!_ETW_REALTIME_CONSUMER\n"
        "   +0x000 Links            : _LIST_ENTRY [ 0xffffc80f`a1b20158 - 0xffffc80f`a1b20158 ]\n"
        "   +0x018 ProcessObject    : 0xffffc80f`12345080 _EPROCESS\n"
    ),
    f"!process {EPROCESS:x} 0": (
        f"PROCESS {EPROCESS:x}\n"
        "    SessionId: 0  Cid: 0ae8    Peb: 5d3f9e7000  ParentCid: 02d4\n"
        "    Image: EventLog.exe\n"
    ),
}


def test_read_struct_parses_dt_output():
    port = DbgEngPort(FakeDbg(OUTPUTS))
    view = port.read_struct(Address(LOGGER), "_WMI_LOGGER_CONTEXT")

    assert view["NumConsumers"] == 1
    assert view.pointer("Consumers.Flink") == NODE
    assert view.offsets["Consumers"] == 0x158


def test_read_struct_without_fields_raises():
    port = DbgEngPort(FakeDbg({f"dt nt!_EPROCESS 0x{EPROCESS:x}": "Memory read error ffffc80f12345080\n"}))
    with pytest.raises(MemoryReadError):
        port.read_struct(Address(EPROCESS), "_EPROCESS")


def test_command_failure_becomes_memory_read_error():
    port = DbgEngPort(FakeDbg({}))
    with pytest.raises(MemoryReadError):
        port.execute_command("!process 0 0")


def test_read_words_little_endian():
    raw = (77).to_bytes(8, "little") + b"svchost.exe\x00\x00\x00\x00\x00"
    port = DbgEngPort(FakeDbg({}, memory={EPROCESS: raw}))

    assert port.read_words(Address(EPROCESS), 1, 8) == [77]
    assert port.read_words(Address(EPROCESS), 2, 4) == [77, 0]
    with pytest.raises(MemoryReadError):
        port.read_words(Address(EPROCESS + 8), 1, 8)
    with pytest.raises(MemoryReadError):
        port.read_words(Address(EPROCESS), 4, 8)  # short read


def test_full_scan_through_dbgeng_port():
    dbg = FakeDbg(OUTPUTS)
    report = EtwConsumerScan(DbgEngPort(dbg)).run()

    assert report.total_consumers == 1
    ident = report.sessions[0].consumers[0].identity
    assert (ident.pid, ident.image_name) == (0xAE8, "EventLog.exe")
    assert report.sessions[0].logger.consumer_list_head == LOGGER + 0x158
    assert sum(c.startswith("dt nt!_ETW_REALTIME_CONSUMER") for c in dbg.commands) == 1
