# This Python file uses the following encoding: utf-8
"""vapp-props entrypoint: click CLI over vApp product sections.

Talks to vCloud Director by default; --json-store swaps in a local JSON file
so the same commands run offline.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from pyvcloud.vcd.client import Client

from vappprops import config
from vappprops.connectors.vcd_client import (
    connect,
    disconnect,
    find_vapp,
    get_ovf,
    is_powered_off,
    list_vms,
    ovf_dump_path,
)
from vappprops.connectors.vcd_sections import VcdSectionRepository
from vappprops.core.errors import PropertySectionError
from vappprops.core.identity import forget_password, get_password, save_password
from vappprops.core.models import ResourceRef
from vappprops.core.render import format_sections, format_vm_properties
from vappprops.core.sections import ProductSectionManager, SectionRepository, list_properties
from vappprops.storage.json_store import JsonSectionStore

logger = logging.getLogger("vappprops")


def _get_default_paths() -> tuple[Path, Path]:
    """Return (log_file, ovf_dump_dir), creating the data directory."""
    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return config.LOG_FILE, config.OVF_DUMP_DIR


def setup_logging(verbose_console: bool = False) -> logging.Logger:
    logger.setLevel(logging.DEBUG)  # emit everything; handlers will filter

    # Drop handlers from an earlier call in the same process
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = False  # don't double-log via root

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    # --- Console: WARNING (or DEBUG with --verbose) ---
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose_console else logging.WARNING)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # --- File: DEBUG, truncated each run ---
    log_file, _ = _get_default_paths()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


@dataclass
class CliContext:
    url: Optional[str]
    login: Optional[str]
    password: Optional[str]
    vdc: Optional[str]
    vapp: Optional[str]
    cert: Optional[Path]
    json_store: Optional[Path]
    client: Optional[Client] = None
    _repo: Optional[SectionRepository] = None

    def ref(self) -> ResourceRef:
        missing = [name for name, value in (("--vdc", self.vdc), ("--vapp", self.vapp)) if not value]
        if missing:
            raise click.UsageError(f"Missing option(s): {', '.join(missing)}")
        return ResourceRef(vdc=self.vdc, vapp=self.vapp)

    def require_endpoint(self) -> tuple[str, str]:
        missing = [name for name, value in (("--url", self.url), ("--user", self.login)) if not value]
        if missing:
            raise click.UsageError(f"Missing option(s): {', '.join(missing)}")
        return self.url, self.login

    def repository(self) -> SectionRepository:
        if self._repo is not None:
            return self._repo
        if self.json_store is not None:
            self._repo = JsonSectionStore(self.json_store, create_missing=True)
            return self._repo

        url, login = self.require_endpoint()
        password = self.password or get_password(url, login)
        if password is None:
            password = click.prompt("Password", hide_input=True)
        click.echo("Vcloud Login")
        if self.cert is None:
            click.echo("Ignoring the Certificate Validation - DO NOT DO THIS IN PRODUCTION")
        else:
            click.echo("\tValidating Certificate.")
        self.client = connect(
            url,
            login,
            password,
            cert_path=self.cert,
            api_version=config.VCD_API_VERSION,
            log_file=config.VCD_SDK_LOG,
        )
        click.echo("\tLogin Success\n")
        self._repo = VcdSectionRepository(self.client, task_timeout=config.TASK_TIMEOUT_S)
        return self._repo

    def close(self) -> None:
        if self.client is not None:
            disconnect(self.client)
            self.client = None


class _Cli(click.Group):
    """Turns repository and I/O failures into a message and exit status 1."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except (PropertySectionError, OSError) as exc:
            logger.critical("%s", exc)
            click.echo(f"Error: {exc}", err=True)
            ctx.exit(1)
        except ValueError as exc:
            raise click.UsageError(str(exc), ctx=ctx) from exc


def _timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _show(manager: ProductSectionManager, ref: ResourceRef, title: str) -> None:
    click.echo(title)
    click.echo(format_sections(manager.list_properties(ref)))


@click.group(cls=_Cli)
@click.option("--url", envvar="VCD_URL", help="vCloud Director endpoint, e.g. https://vcloud. Also VCD_URL.")
@click.option("--user", "login", envvar="VCD_USER", help="user@organization. Also VCD_USER.")
@click.option(
    "--password",
    envvar="VCD_PASSWORD",
    help="Password. Falls back to the keyring (see 'login'), then a prompt.",
)
@click.option("--vdc", envvar="VCD_VDC", help="Name of the VDC holding the vApp. Also VCD_VDC.")
@click.option("--vapp", envvar="VCD_VAPP", help="Name of the vApp. Also VCD_VAPP.")
@click.option(
    "--cert",
    envvar="VCD_CERT",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Local copy of the server certificate; the server must present exactly this one.",
)
@click.option(
    "--json-store",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Work on a local JSON file instead of vCloud Director.",
)
@click.option("-v", "--verbose", is_flag=True, default=config.VERBOSE, help="Log debug output to the console.")
@click.pass_context
def cli(ctx, url, login, password, vdc, vapp, cert, json_store, verbose):
    """Read and change the OVF product properties of a vApp."""
    setup_logging(verbose_console=verbose)
    ctx.obj = CliContext(
        url=url,
        login=login,
        password=password,
        vdc=vdc,
        vapp=vapp,
        cert=cert,
        json_store=json_store,
    )
    ctx.call_on_close(ctx.obj.close)


@cli.command(name="list")
@click.pass_obj
def list_cmd(obj: CliContext) -> None:
    """Print every product section and its properties."""
    ref = obj.ref()
    manager = ProductSectionManager(obj.repository())
    click.echo(format_sections(manager.list_properties(ref)), nl=False)


@cli.command(name="set")
@click.argument("key")
@click.argument("value")
@click.option("--label", default=None, help="Label for a new property (defaults to the key).")
@click.option("--section", "section_id", default="", help="Product section id; empty is the default section.")
@click.option("--class", "product_class", default="", help="ovf:class of the product section, if it has one.")
@click.pass_obj
def set_cmd(
    obj: CliContext, key: str, value: str, label: Optional[str], section_id: str, product_class: str
) -> None:
    """Add KEY=VALUE, or update the value if KEY exists."""
    ref = obj.ref()
    manager = ProductSectionManager(obj.repository())
    manager.set_property(ref, key, value, label=label, section_id=section_id, product_class=product_class)
    _show(manager, ref, f"\nUpdated Product Properties for vApp {ref.vapp}\n")


@cli.command(name="unset")
@click.argument("key")
@click.option("--section", "section_id", default="", help="Product section id; empty is the default section.")
@click.option("--class", "product_class", default="", help="ovf:class of the product section, if it has one.")
@click.pass_obj
def unset_cmd(obj: CliContext, key: str, section_id: str, product_class: str) -> None:
    """Delete the property KEY."""
    ref = obj.ref()
    manager = ProductSectionManager(obj.repository())
    if not manager.delete_property(ref, key, section_id=section_id, product_class=product_class):
        click.echo(f"Warning: Property {key} not found in ProductSection '{section_id}'")
        return
    _show(manager, ref, f"\nProduct Properties for vApp {ref.vapp}\n")


@cli.command(name="delete-section")
@click.option("--section", "section_id", default="", help="Product section id; empty is the default section.")
@click.option("--class", "product_class", default="", help="ovf:class of the product section, if it has one.")
@click.option("--yes", is_flag=True, help="Do not ask before deleting the default section.")
@click.pass_obj
def delete_section_cmd(obj: CliContext, section_id: str, product_class: str, yes: bool) -> None:
    """Delete a whole product section with its properties."""
    ref = obj.ref()
    if not section_id and not product_class and not yes:
        click.confirm(
            "Deleting the default ProductSection may also delete properties the VMs rely on. Continue?",
            abort=True,
        )
    manager = ProductSectionManager(obj.repository())
    if not manager.delete_section(ref, section_id, product_class=product_class):
        click.echo(f"Warning: ProductSection: {section_id} not Found")
        return
    _show(manager, ref, f"\nProduct Properties for vApp {ref.vapp}\n")


@cli.command(name="sample")
@click.option("--cleanup", is_flag=True, help="Delete the sample property afterwards.")
@click.option("--drop-section", is_flag=True, help="Delete the sample product section afterwards.")
@click.pass_obj
def sample_cmd(obj: CliContext, cleanup: bool, drop_section: bool) -> None:
    """Add, update and optionally delete a timestamp property."""
    ref = obj.ref()
    manager = ProductSectionManager(obj.repository())
    section_id = config.PRODUCT_SECTION_ID

    if obj.client is not None and not is_powered_off(find_vapp(obj.client, ref)):
        click.echo("\nWARNING: the vApp must be powered off to update OVF properties.\n")

    _show(manager, ref, f"\nInitial Product Properties for vApp {ref.vapp}\n")

    click.echo("Adding a new vApp Custom Property...\n")
    manager.set_property(ref, config.PROPERTY_KEY, _timestamp(), label=config.PROPERTY_LABEL, section_id=section_id)
    _show(manager, ref, f"\nNew Product Properties for vApp {ref.vapp}\n")

    click.echo("Updating the vApp Custom Property timestamp value...\n")
    manager.set_property(ref, config.PROPERTY_KEY, _timestamp(), label=config.PROPERTY_LABEL, section_id=section_id)
    _show(manager, ref, f"\nUpdated Product Properties for vApp {ref.vapp}\n")

    # Left in place by default so the guest can read it with
    # vmtoolsd --cmd "info-get guestinfo.ovfEnv"
    if cleanup:
        click.echo("\nDeleting the new Property...\n")
        manager.delete_property(ref, config.PROPERTY_KEY, section_id=section_id)
        _show(manager, ref, f"\nProduct Properties for vApp {ref.vapp}\n")
    if drop_section:
        click.echo("\nDeleting the new ProductSection...\n")
        if not manager.delete_section(ref, section_id):
            click.echo(f"Warning: ProductSection: {section_id} not Found")
        _show(manager, ref, f"\nProduct Properties for vApp {ref.vapp}\n")


@cli.command(name="ovf-dump")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Where to write <vapp>_<timestamp>_ovf.xml. Defaults to ~/.vapp-props/ovf.",
)
@click.pass_obj
def ovf_dump_cmd(obj: CliContext, output_dir: Optional[Path]) -> None:
    """Write the vApp OVF to a file and print vApp and VM properties."""
    if obj.json_store is not None:
        raise click.UsageError("ovf-dump needs a vCloud Director endpoint, not --json-store")
    ref = obj.ref()
    repo = obj.repository()
    vapp = find_vapp(obj.client, ref)

    click.echo(f"\nInitial Product Properties for vApp {ref.vapp}\n")
    click.echo(format_sections(list_properties(repo.fetch_sections_at(vapp.href))))

    path = ovf_dump_path(output_dir or _get_default_paths()[1], ref.vapp)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_ovf(obj.client, vapp), encoding="utf-8")
    click.echo(f"Wrote vapp ovf env to {path}")

    click.echo("\nChecking for VM Properties: ")
    for name, href in list_vms(vapp):
        click.echo(f"Found VM named: {name}")
        click.echo(format_vm_properties(name, list_properties(repo.fetch_sections_at(href))), nl=False)


@cli.command(name="login")
@click.pass_obj
def login_cmd(obj: CliContext) -> None:
    """Store the password for --url/--user in the OS keyring."""
    url, login = obj.require_endpoint()
    password = obj.password or click.prompt("Password", hide_input=True, confirmation_prompt=True)
    save_password(url, login, password)
    click.echo(f"Password for {login} at {url} stored in keyring")


@cli.command(name="logout")
@click.pass_obj
def logout_cmd(obj: CliContext) -> None:
    """Remove the stored password for --url/--user."""
    url, login = obj.require_endpoint()
    if forget_password(url, login):
        click.echo(f"Password for {login} at {url} removed from keyring")
    else:
        click.echo(f"No stored password for {login} at {url}")


def main() -> int:
    return cli.main(prog_name="vapp-props")


if __name__ == "__main__":
    sys.exit(main())
