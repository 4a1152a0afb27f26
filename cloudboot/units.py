"""Turning configured systemd units into actions on a unit manager."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Iterable, Protocol

log = logging.getLogger(__name__)

_NETWORK_SUFFIXES = (".network", ".netdev", ".link")


@dataclass
class UnitDropIn:
    """A drop-in file extending a unit."""

    name: str = ""
    content: str = ""


@dataclass
class Unit:
    """A systemd unit together with what should be done to it."""

    name: str = ""
    content: str = ""
    command: str = ""
    runtime: bool = False
    enable: bool = False
    mask: bool = False
    drop_ins: list[UnitDropIn] = field(default_factory=list)

    @property
    def group(self) -> str:
        """Return ``network`` for networkd units and ``system`` for all others."""
        _, ext = posixpath.splitext(self.name)
        return "network" if ext in _NETWORK_SUFFIXES else "system"


class UnitManager(Protocol):
    """Something able to place, toggle and drive systemd units."""

    def place_unit(self, unit: Unit) -> None: ...

    def place_unit_drop_in(self, unit: Unit, drop_in: UnitDropIn) -> None: ...

    def enable_unit_file(self, unit: Unit) -> None: ...

    def run_unit_command(self, unit: Unit, command: str) -> str: ...

    def daemon_reload(self) -> None: ...

    def mask_unit(self, unit: Unit) -> None: ...

    def unmask_unit(self, unit: Unit) -> None: ...


class InterfaceGenerator(Protocol):
    """A network interface able to render its networkd configuration files."""

    def filename(self) -> str: ...

    def netdev(self) -> str: ...

    def link(self) -> str: ...

    def network(self) -> str: ...


def create_networking_units(interfaces: Iterable[InterfaceGenerator] | None) -> list[Unit]:
    """Return runtime units for every non-empty file the interfaces render."""
    units: list[Unit] = []
    for interface in interfaces or ():
        base = interface.filename()
        for suffix, content in (
            ("netdev", interface.netdev()),
            ("link", interface.link()),
            ("network", interface.network()),
        ):
            if content:
                units.append(Unit(name=f"{base}.{suffix}", runtime=True, content=content))
    return units


def process_units(units: Iterable[Unit], root: str, manager: UnitManager) -> None:
    """Apply ``units`` through ``manager``.

    Unit files and drop-ins are written, units are masked, unmasked and
    enabled, systemd is reloaded if anything was written, networkd is
    restarted if a network unit was seen, and finally each unit's command is
    run in order. Errors from the manager propagate.
    """
    actions: list[tuple[Unit, str]] = []
    reload = False
    restart_networkd = False

    for unit in units:
        if not unit.name:
            log.info("Skipping unit without name")
            continue

        if unit.content:
            log.info("Writing unit %r to filesystem", unit.name)
            manager.place_unit(unit)
            log.info("Wrote unit %r", unit.name)
            reload = True

        for drop_in in unit.drop_ins:
            if drop_in.name and drop_in.content:
                log.info("Writing drop-in unit %r to filesystem", drop_in.name)
                manager.place_unit_drop_in(unit, drop_in)
                log.info("Wrote drop-in unit %r", drop_in.name)
                reload = True

        if unit.mask:
            log.info("Masking unit file %r", unit.name)
            manager.mask_unit(unit)
        elif unit.runtime:
            log.info("Ensuring runtime unit file %r is unmasked", unit.name)
            manager.unmask_unit(unit)

        is_network = unit.group == "network"
        if unit.enable:
            if is_network:
                log.info("Skipping enable for network-like unit %r", unit.name)
            else:
                log.info("Enabling unit file %r", unit.name)
                manager.enable_unit_file(unit)
                log.info("Enabled unit %r", unit.name)

        if is_network:
            restart_networkd = True
        elif unit.command:
            actions.append((unit, unit.command))

    if reload:
        try:
            manager.daemon_reload()
        except Exception as err:
            raise RuntimeError(f"failed systemd daemon-reload: {err}") from err

    if restart_networkd:
        log.info("Restarting systemd-networkd")
        result = manager.run_unit_command(Unit(name="systemd-networkd.service"), "restart")
        log.info("Restarted systemd-networkd (%s)", result)

    for unit, command in actions:
        log.info("Calling unit command %r on %r", command, unit.name)
        result = manager.run_unit_command(unit, command)
        log.info("Result of %r on %r: %s", command, unit.name, result)