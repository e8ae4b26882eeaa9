"""xmppupload CLI - Main commands."""
import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

app = typer.Typer(
    name="xmppupload",
    help="Upload files through an XMPP server's HTTP upload service",
    add_completion=False
)
console = Console()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


@app.command()
def discover(
    jid: str = typer.Option(..., "--jid", "-j", help="Account JID"),
    password: str = typer.Option(None, "--password", "-p", help="Account password"),
):
    """Show the HTTP upload service of the account's server."""
    from xmppupload.core.xmpp import ServiceDiscovery
    from xmppupload.core.xmpp.session import connect
    from xmppupload.core.exceptions import UploadError

    if not password:
        password = typer.prompt("Password", hide_input=True)

    async def do_discover():
        try:
            session = await connect(jid, password)
        except UploadError as e:
            console.print(f"[red]Login failed: {e}[/red]")
            raise typer.Exit(1)

        try:
            descriptor = await ServiceDiscovery(session).discover(session.domain)
        except UploadError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        finally:
            await session.close()

        console.print(f"[bold]Service:[/bold] {descriptor.address}")
        if descriptor.max_file_size:
            console.print(f"[bold]Max file size:[/bold] {descriptor.max_file_size:,} bytes")
        else:
            console.print("[bold]Max file size:[/bold] not advertised")

    run_async(do_discover())


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload", exists=True, dir_okay=False),
    jid: str = typer.Option(..., "--jid", "-j", help="Account JID"),
    password: str = typer.Option(None, "--password", "-p", help="Account password"),
    service: str = typer.Option(None, "--service", "-s", help="Upload service JID (skips discovery)"),
    max_size: int = typer.Option(0, "--max-size", help="Size limit of --service in bytes"),
    content_type: str = typer.Option(None, "--content-type", "-c", help="MIME type"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Give up after this many seconds"),
):
    """Upload a file and print its download URL."""
    from xmppupload import UploadClient, UploadContext, UploadProgress, UploadServiceDescriptor
    from xmppupload.core.xmpp.session import connect
    from xmppupload.core.exceptions import UploadError

    if not password:
        password = typer.prompt("Password", hide_input=True)

    async def do_upload() -> UploadProgress:
        try:
            session = await connect(jid, password)
        except UploadError as e:
            console.print(f"[red]Login failed: {e}[/red]")
            raise typer.Exit(1)

        try:
            async with UploadClient(session) as client:
                if service:
                    client.descriptor = UploadServiceDescriptor(service, max_size)
                else:
                    try:
                        await client.discover()
                    except UploadError as e:
                        console.print(f"[red]{e}[/red]")
                        raise typer.Exit(1)

                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TaskProgressColumn(),
                    console=console
                ) as progress:
                    task = progress.add_task(f"Uploading {file_path.name}", total=100)

                    def on_progress(p: UploadProgress):
                        progress.update(task, completed=p.percentage)

                    return await client.upload_file(
                        file_path,
                        progress=on_progress,
                        context=UploadContext(timeout=timeout),
                        content_type=content_type
                    )
        finally:
            await session.close()

    result = run_async(do_upload())
    if result.error is not None:
        console.print(f"[red]Upload failed: {result.error}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Uploaded:[/green] {file_path.name}")
    console.print(f"Size: {result.total_bytes:,} bytes")
    console.print(result.get_url)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
