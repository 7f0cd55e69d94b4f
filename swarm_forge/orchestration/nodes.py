"""
Node manifest for swarm dispatch.
Nodes are grouped into clusters by id prefix; some carry a generation specialty
that the modality router falls back on when a task gives no stronger signal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .state import Modality


class Cluster(Enum):
    APEX = "APEX"
    STRATEGY = "STRATEGY"
    INTELLIGENCE = "INTELLIGENCE"
    CREATION = "CREATION"
    GOVERNANCE = "GOVERNANCE"
    FINANCE = "FINANCE"
    EDUCATION = "EDUCATION"
    SPECIAL_OPS = "SPECIAL_OPS"


CLUSTER_PREFIXES: dict[Cluster, str] = {
    Cluster.APEX: "SN",
    Cluster.STRATEGY: "SP",
    Cluster.INTELLIGENCE: "RA",
    Cluster.CREATION: "CC",
    Cluster.GOVERNANCE: "MI",
    Cluster.FINANCE: "DT",
    Cluster.EDUCATION: "ED",
    Cluster.SPECIAL_OPS: "PS",
}

# Cluster-wide specialties; named nodes below override these.
PREFIX_SPECIALTIES: dict[str, Modality] = {
    "RA": Modality.SEARCH,
    "MI": Modality.FAST_TEXT,
}


@dataclass
class NodeDefinition:
    id: str
    name: str
    cluster: Cluster
    description: str
    specialty: Optional[Modality] = None


NODE_MANIFEST: dict[str, NodeDefinition] = {
    node.id: node
    for node in [
        NodeDefinition("SN-00", "Apex Planner", Cluster.APEX, "Decomposes directives into task plans"),
        NodeDefinition("SP-01", "Strategy Architect", Cluster.STRATEGY, "Positioning, messaging and campaign strategy"),
        NodeDefinition("SP-02", "Market Analyst", Cluster.STRATEGY, "Competitive and market analysis"),
        NodeDefinition("RA-01", "Intel Scanner", Cluster.INTELLIGENCE, "Web research with cited sources", Modality.SEARCH),
        NodeDefinition("RA-02", "Geo Scout", Cluster.INTELLIGENCE, "Location and venue research", Modality.LOCATION),
        NodeDefinition("CC-01", "Copywriter", Cluster.CREATION, "Long-form and short-form copy", Modality.TEXT),
        NodeDefinition("CC-06", "Motion Director", Cluster.CREATION, "Short video synthesis", Modality.VIDEO),
        NodeDefinition("CC-10", "Visual Designer", Cluster.CREATION, "Image synthesis and editing", Modality.IMAGE),
        NodeDefinition("CC-12", "Voice Artist", Cluster.CREATION, "Speech synthesis", Modality.SPEECH),
        NodeDefinition("MI-01", "Compliance Check", Cluster.GOVERNANCE, "Fast policy and sanity checks", Modality.FAST_TEXT),
        NodeDefinition("DT-01", "Budget Modeler", Cluster.FINANCE, "Cost and budget estimates"),
        NodeDefinition("ED-01", "Briefing Writer", Cluster.EDUCATION, "Explainers and training material"),
        NodeDefinition("PS-01", "Red Team", Cluster.SPECIAL_OPS, "Risk review and adversarial critique"),
    ]
}


def get_node(node_id: str) -> Optional[NodeDefinition]:
    return NODE_MANIFEST.get(node_id.strip().upper())


def get_cluster(node_id: str) -> Optional[Cluster]:
    prefix = node_id.strip().upper()[:2]
    for cluster, cluster_prefix in CLUSTER_PREFIXES.items():
        if cluster_prefix == prefix:
            return cluster
    return None


def get_node_specialty(node_id: str) -> Optional[Modality]:
    node = get_node(node_id)
    if node and node.specialty:
        return node.specialty
    return PREFIX_SPECIALTIES.get(node_id.strip().upper()[:2])


def describe_roster() -> str:
    lines = []
    for node in NODE_MANIFEST.values():
        if node.cluster == Cluster.APEX:
            continue
        lines.append(f"- {node.id} ({node.name}): {node.description}")
    return "\n".join(lines)
