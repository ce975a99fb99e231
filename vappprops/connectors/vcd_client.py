from __future__ import annotations

import logging
import re
import ssl
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Tuple
from urllib.parse import urlparse

import requests
import urllib3
from lxml import etree
from pyvcloud.vcd.client import BasicLoginCredentials, Client
from pyvcloud.vcd.exceptions import (
    AccessForbiddenException,
    EntityNotFoundException,
    NotFoundException,
    RequestTimeoutException,
    TaskTimeoutException,
    UnauthorizedException,
    VcdException,
)
from pyvcloud.vcd.org import Org
from pyvcloud.vcd.vapp import VApp
from pyvcloud.vcd.vdc import VDC

from vappprops.core.errors import (
    RemoteRejectedError,
    RemoteTimeoutError,
    ResourceNotFoundError,
    UnauthorizedError,
)
from vappprops.core.models import ResourceRef

logger = logging.getLogger(__name__)

# vCloud resource status code for a powered-off vApp
POWERED_OFF = 8

_PEM_BLOCK = re.compile(r"-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----", re.DOTALL)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise SDK failures as PropertySectionError kinds. I/O errors pass through."""
    try:
        yield
    except (EntityNotFoundException, NotFoundException) as exc:
        raise ResourceNotFoundError(str(exc)) from exc
    except (UnauthorizedException, AccessForbiddenException) as exc:
        raise UnauthorizedError(str(exc)) from exc
    except (TaskTimeoutException, RequestTimeoutException) as exc:
        raise RemoteTimeoutError(str(exc) or "Request timed out") from exc
    except requests.exceptions.SSLError as exc:
        # the session no longer presents the pinned certificate
        raise UnauthorizedError("FAILED: Unauthenticated Access.") from exc
    except requests.exceptions.Timeout as exc:
        raise RemoteTimeoutError(str(exc)) from exc
    except VcdException as exc:
        raise RemoteRejectedError(str(exc)) from exc


def split_user(login: str) -> Tuple[str, str]:
    """Split "user@org" on the last '@' (user names may contain '@')."""
    user, sep, org = login.strip().rpartition("@")
    if not sep or not user or not org:
        raise ValueError(f"User must look like user@organization: {login!r}")
    return user, org


def api_root(url: str) -> str:
    """Endpoint in the form the SDK client expects (no trailing /api)."""
    url = url.strip().rstrip("/")
    if url.endswith("/api"):
        url = url[: -len("/api")]
    return url


# -------- certificate pinning --------


def load_certificate(path: Path | str) -> bytes:
    """Read a PEM or DER certificate file and return DER bytes."""
    raw = Path(path).read_bytes()
    match = _PEM_BLOCK.search(raw.decode("latin-1"))
    if match:
        return ssl.PEM_cert_to_DER_cert(match.group(0))
    return raw


def ca_bundle_for(cert_path: Path | str) -> str:
    """Path of a PEM file holding the pinned certificate, for use as the CA bundle.

    PEM files are used as they are; a DER file is converted into a temporary
    PEM copy.
    """
    raw = Path(cert_path).read_bytes()
    if _PEM_BLOCK.search(raw.decode("latin-1")):
        return str(cert_path)
    with tempfile.NamedTemporaryFile("w", suffix=".pem", delete=False, encoding="ascii") as handle:
        handle.write(ssl.DER_cert_to_PEM_cert(raw))
    return handle.name


def verify_pinned_certificate(url: str, cert_path: Path | str, timeout_s: int = 10) -> None:
    """Compare the certificate the server presents with a local copy, byte for byte."""
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = parsed.hostname or ""
    port = parsed.port or 443
    expected = load_certificate(cert_path)
    served_pem = ssl.get_server_certificate((host, port), timeout=timeout_s)
    served = ssl.PEM_cert_to_DER_cert(served_pem)
    if served != expected:
        logger.error("Certificate presented by %s:%s does not match %s", host, port, cert_path)
        raise UnauthorizedError("FAILED: Unauthenticated Access.")
    logger.debug("Certificate of %s:%s matches %s", host, port, cert_path)


# -------- session --------


def connect(
    url: str,
    login: str,
    password: str,
    *,
    cert_path: Path | str | None = None,
    api_version: str | None = None,
    log_file: str | None = None,
) -> Client:
    """Log in to vCloud Director and return the SDK client.

    With ``cert_path`` the server must present exactly that certificate, and
    every API request is then verified against it as the only trusted CA.
    Without it the server certificate is not validated at all; that is only
    acceptable against lab endpoints.
    """
    user, org = split_user(login)
    if cert_path:
        verify_pinned_certificate(url, cert_path)
        verify: bool | str = ca_bundle_for(cert_path)
    else:
        logger.warning("Ignoring the certificate validation - DO NOT DO THIS IN PRODUCTION")
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        verify = False

    client = Client(
        api_root(url),
        api_version=api_version,
        verify_ssl_certs=verify,
        log_file=log_file,
        log_requests=bool(log_file),
        log_headers=bool(log_file),
        log_bodies=bool(log_file),
    )
    with translate_errors():
        if api_version is None:
            client.set_highest_supported_version()
        client.set_credentials(BasicLoginCredentials(user, org, password))
    logger.info("Logged in to %s as %s", url, login)
    return client


def disconnect(client: Client) -> None:
    try:
        client.logout()
    except (VcdException, requests.exceptions.RequestException) as exc:
        logger.warning("Logout failed: %s", exc)


# -------- lookups --------


def find_vapp(client: Client, ref: ResourceRef) -> VApp:
    """Resolve org (of the session) -> VDC -> vApp by name."""
    with translate_errors():
        org = Org(client, resource=client.get_org())
        try:
            vdc_resource = org.get_vdc(ref.vdc)
        except EntityNotFoundException:
            vdc_resource = None
        if vdc_resource is None:
            raise ResourceNotFoundError(f"VDC {ref.vdc} was not found")
        vdc = VDC(client, resource=vdc_resource)
        try:
            vapp_resource = vdc.get_vapp(ref.vapp)
        except EntityNotFoundException as exc:
            raise ResourceNotFoundError(f"vApp {ref.vapp} was not found") from exc
    return VApp(client, resource=vapp_resource)


def is_powered_off(vapp: VApp) -> bool:
    status = vapp.resource.get("status")
    return status is not None and int(status) == POWERED_OFF


def get_ovf(client: Client, vapp: VApp) -> str:
    """Download the vApp OVF descriptor (includes the OVF environment)."""
    with translate_errors():
        resource = client.get_resource(vapp.href.rstrip("/") + "/ovf")
    return etree.tostring(resource, pretty_print=True, encoding="unicode")


def ovf_dump_path(directory: Path | str, vapp_name: str, now: datetime | None = None) -> Path:
    """<dir>/<vapp>_<yyyyMMddHHmmssfff>_ovf.xml"""
    now = now or datetime.now()
    stamp = now.strftime("%Y%m%d%H%M%S") + f"{now.microsecond // 1000:03d}"
    return Path(directory) / f"{vapp_name}_{stamp}_ovf.xml"


def list_vms(vapp: VApp) -> List[Tuple[str, str]]:
    """(name, href) of every VM in the vApp."""
    with translate_errors():
        vms = vapp.get_all_vms()
    return [(vm.get("name"), vm.get("href")) for vm in vms]
