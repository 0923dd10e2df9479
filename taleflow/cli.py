"""Command line interface for inspecting and exercising taleflow."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

import typer
import yaml

from taleflow import StepFailedError, StepSpec, WorkflowEngine, load_config
from taleflow.contracts import Capability, StepRecord

app = typer.Typer(help="CLI for taleflow workflows")

config_app = typer.Typer(help="Commands for inspecting configuration")
providers_app = typer.Typer(help="Commands for inspecting providers")

app.add_typer(config_app, name="config")
app.add_typer(providers_app, name="providers")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level for taleflow output"),
) -> None:
    """Taleflow CLI entry point."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )


@config_app.command("show")
def config_show(config_path: Optional[str] = typer.Option(None, "--config")) -> None:
    """Print the effective configuration as YAML."""
    config = load_config(config_path)
    typer.echo(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False))


@providers_app.command("list")
def providers_list(config_path: Optional[str] = typer.Option(None, "--config")) -> None:
    """
    List known providers with their capability and fallbacks.

    Example:
        taleflow providers list
        # Output: openai-gpt    text    fallbacks: ovh-ai
    """
    config = load_config(config_path)
    for provider in config.providers:
        alternates = [
            name for name in config.fallbacks.get(provider.name, []) if name != provider.name
        ]
        typer.echo(
            f"{provider.name}\t{provider.capability.value}\t"
            f"fallbacks: {', '.join(alternates) or '(none)'}"
        )


def _simulated_operation(failure_rate: float, max_latency: float, rng: random.Random):
    async def operation(step: StepRecord) -> str:
        await asyncio.sleep(rng.uniform(0, max_latency))
        if rng.random() < failure_rate:
            raise RuntimeError(f"{step.provider} returned a simulated error")
        return f"{step.capability.value} from {step.provider}"

    return operation


@app.command("simulate")
def simulate(
    workflows: int = typer.Option(3, min=1, help="Number of concurrent workflows"),
    failure_rate: float = typer.Option(0.3, min=0.0, max=1.0),
    max_latency: float = typer.Option(0.05, min=0.0, help="Seconds"),
    seed: Optional[int] = typer.Option(None),
    retry_delay: Optional[float] = typer.Option(None, help="Override backoff base (ms)"),
    config_path: Optional[str] = typer.Option(None, "--config"),
) -> None:
    """
    Run text -> image -> audio workflows against simulated providers.

    Prints each workflow's outcome followed by the provider health table,
    which makes it easy to watch fallback and health tracking at work.

    Example:
        taleflow simulate --workflows 5 --failure-rate 0.5 --seed 7
    """
    config = load_config(config_path)
    if retry_delay is not None:
        config.workflow = config.workflow.model_copy(update={"retry_delay": retry_delay})
    engine = WorkflowEngine(config)
    rng = random.Random(seed)
    operation = _simulated_operation(failure_rate, max_latency, rng)

    async def run_one(index: int) -> str:
        steps = [
            StepSpec(
                capability=capability,
                provider=engine.best_provider(capability),
                payload={"story": index, "kind": capability.value},
            )
            for capability in (Capability.TEXT, Capability.IMAGE, Capability.AUDIO)
        ]
        try:
            results = await engine.run(f"sim-{index}", steps, operation)
        except StepFailedError as e:
            return f"sim-{index}: FAILED at {e.step_id} ({e.provider}): {e.last_error}"
        return f"sim-{index}: " + " | ".join(results)

    async def run_all() -> list:
        return await asyncio.gather(*(run_one(i) for i in range(workflows)))

    for line in asyncio.run(run_all()):
        typer.echo(line)

    typer.echo("")
    for record in engine.provider_status():
        summary = record.summary()
        typer.echo(
            f"{summary['provider']}\t{'healthy' if summary['healthy'] else 'UNHEALTHY'}\t"
            f"latency={summary['latency_ms']}ms\terror_rate={summary['error_rate']}\t"
            f"calls={summary['calls']}"
        )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
