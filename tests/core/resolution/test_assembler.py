"""Tests for ordering and dev partitioning of a solved selection."""

from __future__ import annotations

from pubsolve.core.fetch.records import record_from_dict
from pubsolve.core.resolution.assembler import ResolutionAssembler
from pubsolve.core.solver.models import Dependency
from pubsolve.core.solver.solver import SolverResult, build_root_record


def result(root_deps: list[Dependency], **packages: dict) -> SolverResult:
    """A SolverResult selecting ``name -> composer fields`` at version 1.0.0."""
    decisions = {
        name.replace("_", "/"): record_from_dict(fields, name=name.replace("_", "/"), version="1.0.0")
        for name, fields in packages.items()
    }
    return SolverResult(root=build_root_record(root_deps), decisions=decisions)


class TestInstallationOrder:
    """Dependencies first, ties by name, cycles grouped."""

    def test_chain(self) -> None:
        assembler = ResolutionAssembler(
            result(
                [Dependency.parse("v/a", "*")],
                v_a={"require": {"v/b": "*"}},
                v_b={"require": {"v/c": "*"}},
                v_c={},
            )
        )
        assert assembler.installation_order() == ["v/c", "v/b", "v/a"]

    def test_ties_broken_by_name(self) -> None:
        assembler = ResolutionAssembler(
            result([], v_z={}, v_m={}, v_a={"require": {"v/z": "*"}})
        )
        assert assembler.installation_order() == ["v/m", "v/z", "v/a"]

    def test_cycle_members_emitted_together(self) -> None:
        assembler = ResolutionAssembler(
            result(
                [],
                v_app={"require": {"v/y": "*"}},
                v_x={"require": {"v/y": "*", "v/base": "*"}},
                v_y={"require": {"v/x": "*"}},
                v_base={},
            )
        )
        assert ["v/x", "v/y"] in assembler.strongly_connected_components()
        assert assembler.installation_order() == ["v/base", "v/x", "v/y", "v/app"]

    def test_virtual_edges_point_to_provider(self) -> None:
        assembler = ResolutionAssembler(
            result(
                [],
                v_app={"require": {"psr/log-implementation": "^1.0", "php": ">=8.1"}},
                v_logger={"provide": {"psr/log-implementation": "1.0.0"}},
            )
        )
        assert assembler.edges["v/app"] == ["v/logger"]
        assert assembler.installation_order() == ["v/logger", "v/app"]

    def test_long_chain(self) -> None:
        names = [f"v/p{i:05d}" for i in range(2000)]
        decisions = {
            name: record_from_dict(
                {"require": {names[i + 1]: "*"}} if i + 1 < len(names) else {},
                name=name,
                version="1.0.0",
            )
            for i, name in enumerate(names)
        }
        assembler = ResolutionAssembler(
            SolverResult(
                root=build_root_record([Dependency.parse(names[0], "*")]),
                decisions=decisions,
            )
        )
        assert assembler.installation_order() == names[::-1]
        resolution = assembler.assemble()
        assert len(resolution.packages) == 2000
        assert not any(package.is_dev for package in resolution.packages)


class TestAssemble:
    """The resulting Resolution."""

    def test_dev_partition(self) -> None:
        resolution = ResolutionAssembler(
            result(
                [Dependency.parse("v/app", "*"), Dependency.parse("v/test", "*", is_dev=True)],
                v_app={"require": {"v/shared": "*"}},
                v_test={"require": {"v/shared": "*", "v/mock": "*"}},
                v_shared={},
                v_mock={},
            )
        ).assemble()
        dev = {p.name for p in resolution if p.is_dev}
        assert dev == {"v/test", "v/mock"}

    def test_dependencies_recorded(self) -> None:
        resolution = ResolutionAssembler(
            result([Dependency.parse("v/a", "*")], v_a={"require": {"v/b": "*"}}, v_b={})
        ).assemble()
        assert resolution.dependencies_of("v/a") == ["v/b"]
        assert resolution.dependents("v/b") == ["v/a"]

    def test_platform_packages_carried(self) -> None:
        solved = result([])
        solved.platform_packages = ["ext-json", "php"]
        assert ResolutionAssembler(solved).assemble().platform_packages == ["ext-json", "php"]
