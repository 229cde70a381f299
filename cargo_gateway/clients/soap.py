"""
SOAP/XML wire client.

Builds the envelope with ElementTree, posts it and hands back the element
that carries the method result. Aras answers with an escaped XML document
inside <MethodResult>; that inner document is parsed as well.
"""
import threading
import xml.etree.ElementTree as ET
from typing import NamedTuple, Optional

from cargo_gateway.clients.http import HttpClient
from cargo_gateway.config import DEFAULT_TIMEOUT
from cargo_gateway.errors import CarrierBusinessError, ParseError
from cargo_gateway.logger import get_logger

logger = get_logger("soap")

SOAP_11 = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_12 = "http://www.w3.org/2003/05/soap-envelope"


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def iter_local(element, name: str):
    for node in element.iter():
        if local_name(node.tag) == name:
            yield node


def find_local(element, name: str):
    return next(iter_local(element, name), None)


def to_dict(element):
    """
    Element -> plain python value, namespaces stripped.
    Leaf -> stripped text (or None), repeated children -> list.
    """
    children = list(element)
    if not children:
        text = (element.text or "").strip()
        return text or None

    result = {}
    for child in children:
        key = local_name(child.tag)
        value = to_dict(child)
        if key in result:
            if not isinstance(result[key], list):
                result[key] = [result[key]]
            result[key].append(value)
        else:
            result[key] = value
    return result


def rows(element, row_name: str = "Table") -> list[dict]:
    """All <Table> style rows below element, each as a flat dict."""
    if element is None:
        return []
    return [to_dict(node) or {} for node in iter_local(element, row_name)]


def parse_xml(payload, carrier: str | None = None):
    try:
        return ET.fromstring(payload)
    except ET.ParseError as e:
        raise ParseError(f"Invalid XML from carrier: {e}", carrier=carrier) from e


class ServiceDescriptor(NamedTuple):
    location: str
    target_namespace: str
    operations: frozenset


class SoapClient(HttpClient):

    def __init__(self, carrier: str, endpoint: str, namespace: str, credentials: Optional[dict] = None,
                 soap_version: str = "1.2", wsdl_url: Optional[str] = None, qualify_params: bool = True,
                 timeout: float = DEFAULT_TIMEOUT, session=None, user_agent: str = "CargoGateway/1.0"):
        super().__init__(carrier, timeout=timeout, session=session, headers={"User-Agent": user_agent})
        self.endpoint = endpoint
        self.namespace = namespace
        self.credentials = dict(credentials or {})
        self.soap_version = soap_version
        self.wsdl_url = wsdl_url
        self.qualify_params = qualify_params
        self._descriptor: Optional[ServiceDescriptor] = None
        self._descriptor_lock = threading.Lock()

    @property
    def envelope_ns(self) -> str:
        return SOAP_12 if self.soap_version == "1.2" else SOAP_11

    # --- Service descriptor (WSDL) ---

    def load_descriptor(self) -> ServiceDescriptor:
        """Fetches the WSDL once per client; later calls reuse the cached copy."""
        if self._descriptor is not None:
            return self._descriptor
        with self._descriptor_lock:
            if self._descriptor is None:
                if not self.wsdl_url:
                    self._descriptor = ServiceDescriptor(self.endpoint, self.namespace, frozenset())
                else:
                    logger.info(f"{self.carrier} loading service descriptor: {self.wsdl_url}")
                    response = self.request("GET", self.wsdl_url)
                    root = parse_xml(response.content, self.carrier)
                    location = None
                    for node in iter_local(root, "address"):
                        if node.get("location"):
                            location = node.get("location")
                            break
                    operations = frozenset(
                        node.get("name") for node in iter_local(root, "operation") if node.get("name")
                    )
                    self._descriptor = ServiceDescriptor(
                        location=location or self.endpoint,
                        target_namespace=root.get("targetNamespace") or self.namespace,
                        operations=operations,
                    )
        return self._descriptor

    # --- Envelope ---

    def _append(self, parent, key: str, value):
        tag = f"tns:{key}" if self.qualify_params else key
        if isinstance(value, (list, tuple)):
            for item in value:
                self._append(parent, key, item)
            return
        node = ET.SubElement(parent, tag)
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                self._append(node, sub_key, sub_value)
        elif isinstance(value, bool):
            node.text = "true" if value else "false"
        elif value is not None:
            node.text = str(value)

    def build_envelope(self, method: str, params: Optional[dict] = None) -> bytes:
        namespace = self.load_descriptor().target_namespace
        envelope = ET.Element("soap:Envelope", {"xmlns:soap": self.envelope_ns, "xmlns:tns": namespace})
        ET.SubElement(envelope, "soap:Header")
        body = ET.SubElement(envelope, "soap:Body")
        call = ET.SubElement(body, f"tns:{method}")
        for key, value in {**self.credentials, **(params or {})}.items():
            self._append(call, key, value)
        return ET.tostring(envelope, encoding="utf-8", xml_declaration=True)

    def _headers(self, method: str) -> dict:
        action = f"{self.load_descriptor().target_namespace.rstrip('/')}/{method}"
        if self.soap_version == "1.2":
            return {"Content-Type": f'application/soap+xml; charset=utf-8; action="{action}"'}
        return {"Content-Type": "text/xml; charset=utf-8", "SOAPAction": f'"{action}"'}

    # --- Call ---

    def send(self, operation: str, params: Optional[dict] = None):
        """POSTs one SOAP call and returns the result element."""
        descriptor = self.load_descriptor()
        payload = self.build_envelope(operation, params)

        logger.info(f"{self.carrier} SOAP request: {operation}")
        response = self.request("POST", descriptor.location, check=False,
                                data=payload, headers=self._headers(operation))

        try:
            root = parse_xml(response.content, self.carrier)
        except ParseError:
            # Non-XML error pages: let the status code decide first
            self.check_status(response)
            raise

        fault = find_local(root, "Fault")
        if fault is not None:
            reason = find_local(fault, "faultstring")
            if reason is None:
                reason = find_local(fault, "Text")
            message = (reason.text or "").strip() if reason is not None else "SOAP fault"
            raise CarrierBusinessError(message or "SOAP fault", carrier=self.carrier)

        self.check_status(response)

        body = find_local(root, "Body")
        if body is None or len(body) == 0:
            raise ParseError("SOAP response has no body", carrier=self.carrier)
        return self.unwrap_result(body[0], operation)

    def unwrap_result(self, method_response, operation: str):
        result = find_local(method_response, f"{operation}Result")
        if result is None:
            return method_response
        text = (result.text or "").strip()
        if len(result) == 0 and text.startswith("<"):
            return parse_xml(text.encode("utf-8"), self.carrier)
        return result
