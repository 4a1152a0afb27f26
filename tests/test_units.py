from dataclasses import dataclass, field

import pytest

from cloudboot.units import Unit, UnitDropIn, create_networking_units, process_units


class MockInterface:
    def __init__(self, filename="", netdev="", link="", network=""):
        self._filename = filename
        self._netdev = netdev
        self._link = link
        self._network = network

    def filename(self):
        return self._filename

    def netdev(self):
        return self._netdev

    def link(self):
        return self._link

    def network(self):
        return self._network


@dataclass
class RecordingManager:
    placed: list = field(default_factory=list)
    enabled: list = field(default_factory=list)
    masked: list = field(default_factory=list)
    unmasked: list = field(default_factory=list)
    commands: list = field(default_factory=list)
    reload: bool = False

    def place_unit(self, unit):
        self.placed.append(unit.name)

    def place_unit_drop_in(self, unit, drop_in):
        self.placed.append(unit.name + ".d/" + drop_in.name)

    def enable_unit_file(self, unit):
        self.enabled.append(unit.name)

    def run_unit_command(self, unit, command):
        self.commands.append((unit.name, command))
        return ""

    def daemon_reload(self):
        self.reload = True

    def mask_unit(self, unit):
        self.masked.append(unit.name)

    def unmask_unit(self, unit):
        self.unmasked.append(unit.name)


@pytest.mark.parametrize(
    "interfaces, expected",
    [
        (None, []),
        ([MockInterface(filename="test")], []),
        (
            [
                MockInterface(filename="test1", netdev="test netdev"),
                MockInterface(filename="test2", link="test link"),
                MockInterface(filename="test3", network="test network"),
            ],
            [
                Unit(name="test1.netdev", runtime=True, content="test netdev"),
                Unit(name="test2.link", runtime=True, content="test link"),
                Unit(name="test3.network", runtime=True, content="test network"),
            ],
        ),
        (
            [
                MockInterface(
                    filename="test", netdev="test netdev", link="test link", network="test network"
                )
            ],
            [
                Unit(name="test.netdev", runtime=True, content="test netdev"),
                Unit(name="test.link", runtime=True, content="test link"),
                Unit(name="test.network", runtime=True, content="test network"),
            ],
        ),
    ],
)
def test_create_networking_units(interfaces, expected):
    assert create_networking_units(interfaces) == expected


@pytest.mark.parametrize(
    "units, expected",
    [
        ([Unit(name="foo", mask=True)], RecordingManager(masked=["foo"])),
        (
            [
                Unit(name="baz.service", content="[Service]\nExecStart=/bin/baz", command="start"),
                Unit(name="foo.network", content="[Network]\nFoo=true"),
                Unit(name="bar.network", content="[Network]\nBar=true"),
            ],
            RecordingManager(
                placed=["baz.service", "foo.network", "bar.network"],
                commands=[("systemd-networkd.service", "restart"), ("baz.service", "start")],
                reload=True,
            ),
        ),
        (
            [Unit(name="baz.service", content="[Service]\nExecStart=/bin/true")],
            RecordingManager(placed=["baz.service"], reload=True),
        ),
        (
            [Unit(name="locksmithd.service", runtime=True)],
            RecordingManager(unmasked=["locksmithd.service"]),
        ),
        ([Unit(name="woof", enable=True)], RecordingManager(enabled=["woof"])),
        (
            [
                Unit(
                    name="hi.service",
                    runtime=True,
                    content="[Service]\nExecStart=/bin/echo hi",
                    drop_ins=[
                        UnitDropIn(name="lo.conf", content="[Service]\nExecStart=/bin/echo lo"),
                        UnitDropIn(name="bye.conf", content="[Service]\nExecStart=/bin/echo bye"),
                    ],
                )
            ],
            RecordingManager(
                placed=["hi.service", "hi.service.d/lo.conf", "hi.service.d/bye.conf"],
                unmasked=["hi.service"],
                reload=True,
            ),
        ),
        (
            [Unit(drop_ins=[UnitDropIn(name="lo.conf", content="[Service]\nExecStart=/bin/echo lo")])],
            RecordingManager(),
        ),
        (
            [Unit(name="hi.service", drop_ins=[UnitDropIn(content="[Service]\nExecStart=/bin/echo lo")])],
            RecordingManager(),
        ),
        (
            [Unit(name="hi.service", drop_ins=[UnitDropIn(name="lo.conf")])],
            RecordingManager(),
        ),
    ],
)
def test_process_units(units, expected):
    manager = RecordingManager()
    process_units(units, "", manager)
    assert manager == expected


def test_network_unit_is_not_enabled():
    manager = RecordingManager()
    process_units([Unit(name="eth0.network", enable=True, command="start")], "", manager)
    assert manager.enabled == []
    assert manager.commands == [("systemd-networkd.service", "restart")]


@pytest.mark.parametrize(
    "name, group",
    [("a.network", "network"), ("a.netdev", "network"), ("a.link", "network"), ("a.service", "system")],
)
def test_unit_group(name, group):
    assert Unit(name=name).group == group


def test_daemon_reload_failure_is_wrapped():
    class FailingReload(RecordingManager):
        def daemon_reload(self):
            raise OSError("boom")

    with pytest.raises(RuntimeError, match="failed systemd daemon-reload: boom"):
        process_units([Unit(name="a.service", content="x")], "", FailingReload())


def test_place_failure_propagates_and_stops():
    class FailingPlace(RecordingManager):
        def place_unit(self, unit):
            raise OSError("cannot write")

    manager = FailingPlace()
    with pytest.raises(OSError, match="cannot write"):
        process_units([Unit(name="a.service", content="x", command="start")], "", manager)
    assert manager.commands == []