import fnmatch
import json
import logging

import click

from .exceptions import SaveDataError
from .lib import green, red, yellow
from .savedata import SaveData
from .schema import Schema

logger = logging.getLogger(__name__)

def tojson(value):
  return json.dumps(value, separators=(",", ":"), ensure_ascii=False)

def show(sav, name, with_kind=False):
  """Print one field. A failure is reported and does not stop the caller."""
  try:
    value = sav.get(name)
  except SaveDataError as err:
    click.echo(red(f"{name} {err}"), err=True)
    return False

  if with_kind:
    click.echo(f"{name:60} {tojson(value)} {sav.kind(name)}")
  else:
    click.echo(f"{name} {tojson(value)}")
  return True

def parse_assignment(assignment):
  name, sep, value = assignment.partition("=")
  if not sep or not name:
    raise click.BadParameter(
      f"expected NAME=VALUE, got {assignment!r}", param_hint="--set"
    )
  try:
    return name, json.loads(value)
  except json.JSONDecodeError as err:
    raise click.BadParameter(
      f"{value!r} is not valid JSON: {err}", param_hint="--set"
    )

@click.command()
@click.option("-i", "--input", "input_path", required=True, type=click.Path(exists=True, dir_okay=False), help="game_data.sav input file")
@click.option("-S", "--schema", "schema_path", envvar="SAVEBUFFER_SCHEMA", type=click.Path(exists=True, dir_okay=False), help="JSON catalog of field name -> kind.")
@click.option("-v", "--value", "patterns", multiple=True, help="Name to read, accepts wildcards * and ?")
@click.option("-s", "--set", "assignments", multiple=True, help="Set NAME=VALUE where VALUE is JSON.")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output file.")
@click.option("-w", "--writeover", is_flag=True, default=False, help="Overwrite the input file.")
@click.option("-a", "--all", "show_all", is_flag=True, default=False, help="Show all values (name, value, kind).")
@click.option("--verbose", is_flag=True, default=False, help="Log debug information.")
def main(input_path, schema_path, patterns, assignments, output, writeover, show_all, verbose):
  """Read and edit fields of a save file."""
  logging.basicConfig(
    level=(logging.DEBUG if verbose else logging.WARNING),
    format="%(levelname)s %(name)s: %(message)s",
  )

  assignments = [ parse_assignment(a) for a in assignments ]

  try:
    schema = Schema.from_json(schema_path) if schema_path else Schema()
    sav = SaveData.read(input_path, schema=schema)
  except (SaveDataError, OSError, TypeError, ValueError) as err:
    raise click.ClickException(str(err))

  if not schema_path:
    logger.warning("No schema given. Names cannot be listed and every field reads as a bool.")

  names = schema.names()

  for pattern in patterns:
    matches = [ name for name in names if fnmatch.fnmatchcase(name, pattern) ]
    if not matches and pattern in sav:
      matches = [ pattern ]
    for name in matches:
      show(sav, name)

  if show_all:
    for name in names:
      show(sav, name, with_kind=True)

  if assignments:
    click.echo("Setting values ...")

  failures = 0
  for name, value in assignments:
    show(sav, name)
    try:
      sav.set(name, value)
    except SaveDataError as err:
      failures += 1
      click.echo(red(f"{name} not set: {err}"), err=True)
      continue
    click.echo(green(f"{name} {tojson(sav.get(name))} set"))

  if writeover:
    output = input_path
  if output:
    click.echo(yellow(f"Writing output to {output}..."))
    try:
      sav.write(output)
    except SaveDataError as err:
      raise click.ClickException(str(err))

  if failures:
    raise SystemExit(1)

if __name__ == "__main__":
  main()
