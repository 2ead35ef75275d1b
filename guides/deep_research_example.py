"""Deep research job across the search, data-processor and summarizer agents.

This example demonstrates how to:
1. Load agent addresses from agentrelay.yaml or environment variables
2. Submit a deep-research job that fans out search across two sources
3. Follow task progress while the pipeline runs in the background
4. Inspect the recorded workflow steps once the job finishes
"""

import asyncio
import logging

from agentrelay import Orchestrator, RemoteAgentClient, load_config
from agentrelay.tracing import LoggingTracer


async def main():
    config = load_config()
    async with RemoteAgentClient(config) as client:
        orchestrator = Orchestrator(client, tracer=LoggingTracer())

        task = await orchestrator.submit(
            {
                "type": "deep-research",
                "topic": "Long-duration grid energy storage",
                "options": {
                    "depth": "comprehensive",
                    "sources": ["web", "news"],
                    "parallel_tasks": True,
                },
                "audience_type": "executive",
            },
            initiated_by="deep-research-guide",
        )
        print(f"Submitted {task.id}; phases: {task.phases}")

        while not task.is_terminal:
            await asyncio.sleep(2)
            task = orchestrator.get_task(task.id)
            print(f"[{task.progress:3d}%] {task.current_phase}")

        if task.status == "completed":
            print("Executive summary:", task.result["executive_summary"])
            for finding in task.result["key_findings"]:
                print(" -", finding)
        else:
            print(f"Job {task.status}: {task.error}")

        execution = orchestrator.get_execution(task.workflow_execution_id)
        for step in execution.steps:
            print(f"#{step.step_number} {step.agent_name} {step.operation}: {step.status}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
