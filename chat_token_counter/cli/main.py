"""
CLI interface for the token counter.

Counts prompt tokens for request files without calling the service.
"""

import sys
from dataclasses import fields
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from chat_token_counter.config.loader import load_count_request
from chat_token_counter.core.function_schema import render_function_definitions
from chat_token_counter.core.model_family import FRAMING_TABLE, FramingConstants
from chat_token_counter.core.token_counter import TokenCounter

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DEFAULT_MODEL = "gpt-3.5-turbo"

FRAMING_CONSTANT_FIELDS = [f.name for f in fields(FramingConstants)]


def _build_counter(config: Optional[str]) -> TokenCounter:
    if config:
        return TokenCounter.from_config(config)
    return TokenCounter()


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Chat Token Counter CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Chat Token Counter - Use --help to see available commands")


@app.command()
def count(
    request_file: str = typer.Argument(..., help="YAML or JSON chat completion request"),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Model to count for (overrides the request's model)"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Counter configuration file"
    )
):
    """
    Count the prompt tokens a request will use.

    The request uses the chat completions wire shape: `messages`, and
    optionally `functions` and `function_call`.
    """
    try:
        counter = _build_counter(config)
        request = load_count_request(request_file)
        model_name = model or request.model or DEFAULT_MODEL

        message_tokens = counter.count_message_tokens(model_name, request.messages)
        total = counter.count_request(
            model_name,
            request.messages,
            request.functions,
            request.response_function_name
        )
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    family = counter.classify(model_name)
    table = Table(title=f"Prompt Token Estimate: {model_name} ({family.name})")
    table.add_column("Component")
    table.add_column("Tokens", justify="right")
    table.add_row("Messages", str(message_tokens))
    if request.functions or request.response_function_name:
        table.add_row("Functions", str(total - message_tokens))
    table.add_row("[bold]Total[/bold]", f"[bold]{total}[/bold]")
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def render(
    request_file: str = typer.Argument(..., help="YAML or JSON chat completion request")
):
    """Print function definitions as they are presented to the model."""
    try:
        request = load_count_request(request_file)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not request.functions:
        console.print("[dim]No functions in request.[/]")
        sys.exit(EXIT_CODE_PASS)

    # Plain print; rich markup would consume the brackets in `any[]`
    print(render_function_definitions(request.functions))
    sys.exit(EXIT_CODE_PASS)


@app.command()
def families():
    """List model families and their framing constants."""
    table = Table(title="Framing Constants")
    table.add_column("Constant", no_wrap=True)
    for family in FRAMING_TABLE.constants:
        table.add_column(family.value, justify="right", no_wrap=True)

    # One row per constant, one column per family
    for field_name in FRAMING_CONSTANT_FIELDS:
        table.add_row(
            field_name,
            *(str(getattr(constants, field_name)) for constants in FRAMING_TABLE.constants.values())
        )
    console.print(table)


if __name__ == "__main__":
    app()
