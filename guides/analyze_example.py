"""Two-step analyze job: the data processor's output feeds an executive summary."""

import asyncio
import json

from agentrelay import Orchestrator, RemoteAgentClient


async def main():
    async with RemoteAgentClient() as client:
        orchestrator = Orchestrator(client)
        task = await orchestrator.execute(
            {
                "type": "analyze",
                "data": {"quarter": "Q3", "revenue": [120, 135, 150], "churn": [0.04, 0.05, 0.03]},
                "context": {"team": "finance"},
                "audience_type": "executive",
            },
            initiated_by="analyze-guide",
            timeout=600,
        )
        print(json.dumps(task.to_a2a(), indent=2, default=str))

        history = orchestrator.recorder.list_executions(limit=5)
        print(f"{history.total_executions} executions recorded")


if __name__ == "__main__":
    asyncio.run(main())
