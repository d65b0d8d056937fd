"""CLI entrypoint: Typer app definition and command registration"""

import typer

from srctrack.cli.commands import (
    changed_cmd, classify_cmd, init_cmd, parse_diff_cmd, track_cmd, watch_cmd,
    snapshot_activate_cmd, snapshot_clear_cmd, snapshot_deactivate_cmd, snapshot_delete_cmd,
    snapshot_diff_cmd, snapshot_list_cmd, snapshot_rename_cmd, snapshot_show_cmd, snapshot_take_cmd,
)


app = typer.Typer(name="srctrack", no_args_is_help=True, help="Line change markers against git refs or snapshots")
snapshot_app = typer.Typer(no_args_is_help=True, help="Capture and manage file snapshots")

app.command(name="classify")(classify_cmd)
app.command(name="parse-diff")(parse_diff_cmd)
app.command(name="track")(track_cmd)
app.command(name="changed")(changed_cmd)
app.command(name="watch")(watch_cmd)
app.command(name="init")(init_cmd)

snapshot_app.command(name="take")(snapshot_take_cmd)
snapshot_app.command(name="list")(snapshot_list_cmd)
snapshot_app.command(name="show")(snapshot_show_cmd)
snapshot_app.command(name="activate")(snapshot_activate_cmd)
snapshot_app.command(name="deactivate")(snapshot_deactivate_cmd)
snapshot_app.command(name="rename")(snapshot_rename_cmd)
snapshot_app.command(name="delete")(snapshot_delete_cmd)
snapshot_app.command(name="clear")(snapshot_clear_cmd)
snapshot_app.command(name="diff")(snapshot_diff_cmd)

app.add_typer(snapshot_app, name="snapshot")
