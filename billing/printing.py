import base64
import logging

import requests

from billing.models import PrinterConfig, PrinterType, PrintResult

logger = logging.getLogger(__name__)

BROWSER = "browser"
BLUETOOTH = "bluetooth"
LOCAL = "local"


def print_method_for(printer_type: PrinterType) -> str:
    if printer_type == PrinterType.BLUETOOTH:
        return BLUETOOTH
    if printer_type in (PrinterType.USB, PrinterType.NETWORK):
        return LOCAL
    return BROWSER


def send_to_local_agent(
    pdf: bytes, printer: PrinterConfig, agent_url: str, timeout: float = 10.0
) -> PrintResult:
    try:
        resp = requests.post(
            agent_url,
            json={
                "printerId": printer.id,
                "pdfData": base64.b64encode(pdf).decode("ascii"),
            },
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.error("Print agent at %s unreachable: %s", agent_url, exc)
        return PrintResult(success=False, method=LOCAL, message="Print agent unreachable")

    if not resp.ok:
        logger.error("Print agent returned %s: %s", resp.status_code, resp.text[:500])
        return PrintResult(success=False, method=LOCAL, message="Local print agent returned an error")

    try:
        job_id = resp.json().get("jobId")
    except ValueError:
        job_id = None
    logger.info("Print job sent to %s (%s)", printer.name, job_id)
    return PrintResult(
        success=True,
        method=LOCAL,
        message="Print job sent to printer successfully",
        job_id=job_id,
    )


def dispatch(pdf: bytes, printer: PrinterConfig, agent_url: str, timeout: float = 10.0) -> PrintResult:
    """Route a rendered invoice to the printer's delivery mechanism.

    Browser printing and Bluetooth printers are driven from the user's
    browser; the server can only hand the document back for the former.
    """
    method = print_method_for(printer.type)
    if method == LOCAL:
        return send_to_local_agent(pdf, printer, agent_url, timeout)
    if method == BLUETOOTH:
        logger.warning("Bluetooth printer %s requested server-side", printer.id)
        return PrintResult(
            success=False,
            method=BLUETOOTH,
            message="Bluetooth printers must be connected from the browser",
        )
    return PrintResult(success=True, method=BROWSER, message="Open the invoice in the browser to print")
