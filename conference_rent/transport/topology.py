"""
Bus Topology
============

Names of every exchange and shared queue the actors use. A topology is
handed to each actor's constructor, so two tests can run two isolated
systems side by side on one broker by giving them different names.

| Role                          | Pattern                     |
|-------------------------------|-----------------------------|
| snapshot_exchange             | fanout, every Agent listens |
| customer_request_exchange     | direct, shared queue        |
| customer_reply_exchange       | direct, key = customer_id   |
| building_request_exchange     | direct, key = building_id   |
| building_reply_exchange       | direct, key = agent_id      |
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BusTopology:
    """Exchange and queue names."""
    snapshot_exchange: str = "agentBuildFanoutExchange"
    customer_request_exchange: str = "custAgentExchange"
    customer_request_queue: str = "custAgentQueue"
    customer_reply_exchange: str = "agentCustExchange"
    building_request_exchange: str = "agentBuildExchange"
    building_reply_exchange: str = "buildAgentExchange"

    def inbox_queue(self, actor_id: str) -> str:
        """Personal queue of a Building, Agent or Customer."""
        return f"{actor_id}Queue"

    def snapshot_queue(self, agent_id: str) -> str:
        """Per-Agent queue bound to the snapshot fanout."""
        return f"agent_{agent_id}_snapshots"

    @classmethod
    def prefixed(cls, prefix: str) -> "BusTopology":
        """A topology whose every name starts with `prefix`."""
        defaults = cls()
        return cls(**{
            name: f"{prefix}{value}"
            for name, value in vars(defaults).items()
        })
