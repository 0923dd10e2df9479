"""Example: generate a story segment with text, illustration and narration."""

import asyncio
import logging
import random

from taleflow import StepFailedError, StepSpec, WorkflowEngine, load_config
from taleflow.contracts import Capability, StepRecord

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


async def fake_provider_call(step: StepRecord) -> str:
    """Stand-in for a real provider client; fails now and then."""
    await asyncio.sleep(random.uniform(0.01, 0.1))
    if random.random() < 0.3:
        raise RuntimeError(f"{step.provider} is overloaded")
    return f"<{step.capability.value} from {step.provider}>"


async def main():
    config = load_config()
    config.workflow = config.workflow.model_copy(update={"retry_delay": 50})
    engine = WorkflowEngine(config)

    request = {"genre": "fantasy", "age_band": "6-8", "prompt": "A dragon who is afraid of the dark"}
    steps = [
        StepSpec(
            capability=capability,
            provider=engine.best_provider(capability),
            payload={**request, "kind": capability.value},
        )
        for capability in (Capability.TEXT, Capability.IMAGE, Capability.AUDIO)
    ]

    try:
        text, image, audio = await engine.run("story-42", steps, fake_provider_call)
    except StepFailedError as e:
        print(f"❌ Could not generate the story: {e.to_dict()}")
        return

    print(f"📖 {text}\n🖼  {image}\n🔊 {audio}")
    for record in engine.provider_status():
        print(record.summary())


if __name__ == "__main__":
    asyncio.run(main())
