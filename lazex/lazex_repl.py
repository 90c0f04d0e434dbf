import asyncio
import sys
from pathlib import Path

from lazex.lazex_config import EngineConfig, load_config
from lazex.lazex_printer import Printer
from lazex.lazex_runtime import ExpressionRunner, ExecutionResult

BANNER = "LAZEX REPL v0.1"


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def _print_effects(result: ExecutionResult):
    for effect in result.side_effects:
        if effect.get('topics') in (['stdout'], ['log']):
            print(effect.get('message', ''))


def _config_from_args(args) -> EngineConfig:
    if "--config" in args:
        i = args.index("--config")
        if i + 1 >= len(args):
            print("Error: --config needs a file", file=sys.stderr)
            raise SystemExit(2)
        path = args[i + 1]
        del args[i:i + 2]
        return load_config(path)
    return EngineConfig()


def run_script_file(file_path: str, config: EngineConfig = None):
    """Evaluate a file as one expression and exit with an appropriate status."""
    runner = ExpressionRunner(config=config)
    printer = Printer()
    try:
        source = Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = runner.run(source)
    _print_effects(result)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    print(printer.pformat(result.value))


async def main(argv=None):
    """Run an expression file when provided, otherwise start the interactive REPL."""
    args = list(sys.argv[1:] if argv is None else argv)
    config = _config_from_args(args)
    if args and not args[0].startswith("-"):
        run_script_file(args[0], config)
        return

    print(BANNER)
    print("Type 'exit' or press Ctrl+D to quit.")

    # One runner, so variables persist between lines.
    runner = ExpressionRunner(config=config)
    printer = Printer()

    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()
            if not line:
                continue
            if line == "exit":
                break

            result = runner.run(line)
            _print_effects(result)
            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue
            print(printer.pformat(result.value))

        except EOFError:
            print("\nExiting.")
            break


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")


if __name__ == "__main__":
    cli()
