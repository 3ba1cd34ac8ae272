"""Orchestration layer that runs the generation pipeline end to end."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, MutableMapping, Sequence

from .adapters import ConfigLoader, PlanLoader, PlanLoaderError
from .builders import GraphBuilder, MapBuilder, ResourceOverviewBuilder
from .errors import ConfigurationError
from .models import (
    ConfigTree,
    Diagnostic,
    DiagnosticSeverity,
    Graph,
    ResourceMap,
    ResourceOverview,
)
from .serialization import graph_to_dict, map_to_dict, overview_to_dict

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    DiagnosticSeverity.INFO: logging.INFO,
    DiagnosticSeverity.WARNING: logging.WARNING,
    DiagnosticSeverity.ERROR: logging.ERROR,
}

DOCUMENT_KINDS = ("plan", "rso", "map", "graph")


@dataclass(frozen=True, slots=True)
class AssetSnapshot:
    """The documents produced by one pipeline run."""

    name: str
    plan: Mapping[str, Any]
    overview: ResourceOverview
    map: ResourceMap
    graph: Graph

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [*self.overview.diagnostics, *self.map.diagnostics, *self.graph.diagnostics]

    def document(self, kind: str) -> Dict[str, Any]:
        """Return the JSON-ready document for ``plan``, ``rso``, ``map`` or ``graph``."""

        if kind == "plan":
            return copy.deepcopy(dict(self.plan))
        if kind == "rso":
            return overview_to_dict(self.overview)
        if kind == "map":
            return map_to_dict(self.map)
        if kind == "graph":
            return graph_to_dict(self.graph)
        raise KeyError(f"Unknown document kind {kind!r}; expected one of {', '.join(DOCUMENT_KINDS)}")


class SnapshotStore:
    """Holds the snapshot currently being served.

    Readers take the reference without locking; ``swap`` replaces it with a
    single assignment so a reader sees either the old or the new snapshot.
    """

    def __init__(self, snapshot: AssetSnapshot | None = None) -> None:
        self._snapshot = snapshot
        self._write_lock = threading.Lock()

    @property
    def current(self) -> AssetSnapshot | None:
        return self._snapshot

    def swap(self, snapshot: AssetSnapshot) -> AssetSnapshot | None:
        with self._write_lock:
            previous = self._snapshot
            self._snapshot = snapshot
        return previous

    def document(self, kind: str) -> Dict[str, Any]:
        snapshot = self._snapshot
        if snapshot is None:
            raise LookupError("No snapshot has been generated yet")
        return snapshot.document(kind)


PlanLoaderFactory = Callable[..., PlanLoader]


class VisualizationService:
    """High level service responsible for plan ingestion and document generation."""

    def __init__(
        self,
        *,
        plan_loader_factory: PlanLoaderFactory | None = None,
        config_loader: ConfigLoader | None = None,
        overview_builder: ResourceOverviewBuilder | None = None,
        map_builder: MapBuilder | None = None,
        graph_builder: GraphBuilder | None = None,
    ) -> None:
        self._plan_loader_factory = plan_loader_factory or PlanLoader
        self._config_loader = config_loader or ConfigLoader()
        self._overview_builder = overview_builder or ResourceOverviewBuilder()
        self._map_builder = map_builder or MapBuilder()
        self._graph_builder = graph_builder or GraphBuilder()

    # ------------------------------------------------------------------
    def generate(
        self,
        working_dir: Path,
        *,
        name: str = "atlas",
        plan_json_path: Path | None = None,
        plan_file_path: Path | None = None,
        config_path: Path | None = None,
        var_files: Sequence[Path] | None = None,
        env: Mapping[str, str] | None = None,
        inherit_environment: bool = False,
        terraform_bin: str = "terraform",
    ) -> AssetSnapshot:
        """Load inputs and run the three builders in order."""

        loader_kwargs: MutableMapping[str, Any] = {
            "working_dir": working_dir,
            "plan_json_path": plan_json_path,
            "plan_file_path": plan_file_path,
            "inherit_environment": inherit_environment,
            "terraform_bin": terraform_bin,
        }
        if var_files:
            loader_kwargs["var_files"] = list(var_files)
        if env:
            loader_kwargs["env"] = dict(env)

        loader = self._plan_loader_factory(**loader_kwargs)
        plan = loader.load_plan()
        if not isinstance(plan, Mapping):
            raise PlanLoaderError("Plan document must be a JSON object")

        logger.info("Parsing configuration...")
        if config_path is not None:
            config = self._config_loader.load(config_path)
        else:
            config = self._config_loader.from_plan(plan)

        return self.build(plan, config, name=name)

    def build(self, plan: Mapping[str, Any], config: ConfigTree, *, name: str = "atlas") -> AssetSnapshot:
        """Run the pipeline on already materialized inputs."""

        if config.has_errors:
            raise ConfigurationError("Configuration diagnostics contain errors")

        logger.info("Generating resource overview...")
        overview = self._overview_builder.build(plan)

        logger.info("Generating resource map...")
        resource_map = self._map_builder.build(config, overview, plan=plan)

        logger.info("Generating resource graph...")
        graph = self._graph_builder.build(plan, resource_map)

        snapshot = AssetSnapshot(
            name=name,
            plan=MappingProxyType(copy.deepcopy(dict(plan))),
            overview=overview,
            map=resource_map,
            graph=graph,
        )
        for diagnostic in snapshot.diagnostics:
            logger.log(
                _LOG_LEVELS[diagnostic.severity], "%s: %s", diagnostic.code, diagnostic.summary
            )
        logger.info("Done generating assets.")
        return snapshot


__all__ = ["AssetSnapshot", "DOCUMENT_KINDS", "SnapshotStore", "VisualizationService"]
