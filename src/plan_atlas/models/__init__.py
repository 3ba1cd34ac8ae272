"""Data models for plan overviews, ownership maps and dependency graphs."""

from .address import ModuleStep, ResourceAddress, parse_address, parse_module_address
from .config import (
    ConfigModule,
    ConfigOutput,
    ConfigProvider,
    ConfigResource,
    ConfigTree,
    ConfigVariable,
    ModuleCall,
)
from .diagnostic import Diagnostic, DiagnosticSeverity
from .graph import Graph, GraphEdge, GraphNode
from .map import ROOT_ID, MapNode, NodeKind, ResourceMap
from .overview import (
    AttributeDiff,
    ChangeAction,
    DiffKind,
    OutputChange,
    ResourceOverview,
    ResourceOverviewEntry,
)

__all__ = [
    "AttributeDiff",
    "ChangeAction",
    "ConfigModule",
    "ConfigOutput",
    "ConfigProvider",
    "ConfigResource",
    "ConfigTree",
    "ConfigVariable",
    "Diagnostic",
    "DiagnosticSeverity",
    "DiffKind",
    "Graph",
    "GraphEdge",
    "GraphNode",
    "MapNode",
    "ModuleCall",
    "ModuleStep",
    "NodeKind",
    "OutputChange",
    "ROOT_ID",
    "ResourceAddress",
    "ResourceMap",
    "ResourceOverview",
    "ResourceOverviewEntry",
    "parse_address",
    "parse_module_address",
]
