"""
Command line entry point for running research manually.
"""
from __future__ import annotations

import logging

import click
from dotenv import load_dotenv

from deep_research.exceptions import InvalidTopicError
from deep_research.pipeline import ResearchPipeline
from deep_research.query import classify_query, expand_queries
from deep_research.serialization import result_to_json
from deep_research.settings import load_settings

PARTIAL_NOTICE = (
    "Partial results: the research deadline was reached. Abandoned source requests may keep "
    "this process open until their own timeouts expire."
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("topic")
def classify(topic: str):
    query_type = classify_query(topic)
    click.echo(query_type.value)
    for query in expand_queries(topic, query_type):
        click.echo(f"  {query}")


@cli.command()
@click.argument("topic")
@click.option("--persona", default=None, help="Audience hint for the brief.")
@click.option("--deadline", type=float, default=None, help="Outer time budget in seconds.")
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON.")
def research(topic: str, persona: str | None, deadline: float | None, as_json: bool):
    """
    Research TOPIC across every source and print the brief.

    When the deadline cuts a run short, requests still in flight are abandoned
    but not killed, so the process can linger on exit until their own timeouts
    expire (up to the slowest connector timeout).
    """
    pipeline = ResearchPipeline(load_settings())
    try:
        result = pipeline.run(topic, persona=persona, deadline_seconds=deadline)
    except InvalidTopicError as exc:
        raise click.BadParameter(str(exc), param_hint="TOPIC")

    if as_json:
        click.echo(result_to_json(result, indent=2))
    elif result.has_results:
        click.echo(result.brief)
    else:
        click.echo("No data found for this topic. Try a different search term.", err=True)
    if result.partial:
        click.echo(PARTIAL_NOTICE, err=True)
    if not as_json and not result.has_results:
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    cli()
