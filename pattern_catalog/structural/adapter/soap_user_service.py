"""
SOAP user service adapter.

The rest of the application wants a plain ``UserService`` returning
pydantic models. The legacy backend only speaks SOAP envelopes, so the
adapter builds request XML, calls the client, and parses the response.
"""

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import BaseModel

from ...exceptions import ExternalServiceException, ResourceNotFoundException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency_sync

logger = get_logger(__name__)

SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
USER_NS = "urn:example:users"


class User(BaseModel):
    id: int
    name: str
    email: str
    active: bool = True


class UserService(ABC):
    @abstractmethod
    def get_user(self, user_id: int) -> User: ...

    @abstractmethod
    def list_users(self) -> List[User]: ...

    @abstractmethod
    def create_user(self, data: Dict[str, str]) -> User: ...


class LegacySoapClient:
    """Fake SOAP endpoint that answers with canned envelopes."""

    def __init__(self, endpoint: str = "https://legacy.example.com/UserService.asmx"):
        self.endpoint = endpoint
        self.requests: List[str] = []
        self._users: Dict[int, Dict[str, str]] = {
            1: {"Name": "Alice Smith", "Email": "alice@example.com", "Active": "true"},
            2: {"Name": "Bob Jones", "Email": "bob@example.com", "Active": "false"},
        }

    def call(self, action: str, envelope_xml: str) -> str:
        simulate_latency_sync(50)
        self.requests.append(envelope_xml)
        body = ET.fromstring(envelope_xml).find(f"{{{SOAP_NS}}}Body")
        request = body[0] if body is not None and len(body) else None

        if action == "GetUser":
            user_id = int(request.findtext(f"{{{USER_NS}}}UserId", "0"))
            if user_id not in self._users:
                return self._fault("soap:Client", f"User {user_id} does not exist")
            return self._respond("GetUserResponse", [self._user_xml(user_id)])
        if action == "ListUsers":
            return self._respond("ListUsersResponse", [self._user_xml(uid) for uid in self._users])
        if action == "CreateUser":
            new_id = max(self._users) + 1
            self._users[new_id] = {
                "Name": request.findtext(f"{{{USER_NS}}}Name", ""),
                "Email": request.findtext(f"{{{USER_NS}}}Email", ""),
                "Active": "true",
            }
            return self._respond("CreateUserResponse", [self._user_xml(new_id)])
        return self._fault("soap:Client", f"Unknown action {action}")

    def _user_xml(self, user_id: int) -> str:
        fields = "".join(f"<u:{k}>{v}</u:{k}>" for k, v in self._users[user_id].items())
        return f"<u:User><u:Id>{user_id}</u:Id>{fields}</u:User>"

    def _respond(self, name: str, items: List[str]) -> str:
        return (
            f'<soap:Envelope xmlns:soap="{SOAP_NS}" xmlns:u="{USER_NS}"><soap:Body>'
            f"<u:{name}>{''.join(items)}</u:{name}></soap:Body></soap:Envelope>"
        )

    def _fault(self, code: str, reason: str) -> str:
        return (
            f'<soap:Envelope xmlns:soap="{SOAP_NS}"><soap:Body><soap:Fault>'
            f"<faultcode>{code}</faultcode><faultstring>{reason}</faultstring>"
            "</soap:Fault></soap:Body></soap:Envelope>"
        )


class SoapUserServiceAdapter(UserService):
    def __init__(self, client: LegacySoapClient):
        self.client = client

    def get_user(self, user_id: int) -> User:
        users = self._invoke("GetUser", {"UserId": str(user_id)})
        if not users:
            raise ResourceNotFoundException("user", user_id)
        return users[0]

    def list_users(self) -> List[User]:
        return self._invoke("ListUsers", {})

    def create_user(self, data: Dict[str, str]) -> User:
        return self._invoke("CreateUser", {"Name": data["name"], "Email": data["email"]})[0]

    def _invoke(self, action: str, params: Dict[str, str]) -> List[User]:
        logger.info("SOAP call", action=action, endpoint=self.client.endpoint)
        response = self.client.call(action, self._envelope(action, params))
        return self._parse(action, response)

    @staticmethod
    def _envelope(action: str, params: Dict[str, str]) -> str:
        envelope = ET.Element(f"{{{SOAP_NS}}}Envelope")
        body = ET.SubElement(envelope, f"{{{SOAP_NS}}}Body")
        request = ET.SubElement(body, f"{{{USER_NS}}}{action}")
        for name, value in params.items():
            ET.SubElement(request, f"{{{USER_NS}}}{name}").text = value
        return ET.tostring(envelope, encoding="unicode")

    @staticmethod
    def _parse(action: str, response: str) -> List[User]:
        body = ET.fromstring(response).find(f"{{{SOAP_NS}}}Body")
        fault = body.find(f"{{{SOAP_NS}}}Fault")
        if fault is not None:
            raise ExternalServiceException("soap-user-service", fault.findtext("faultstring"))
        return [
            User(
                id=int(node.findtext(f"{{{USER_NS}}}Id")),
                name=node.findtext(f"{{{USER_NS}}}Name"),
                email=node.findtext(f"{{{USER_NS}}}Email"),
                active=node.findtext(f"{{{USER_NS}}}Active") == "true",
            )
            for node in body.iter(f"{{{USER_NS}}}User")
        ]


def get_user_summary(service: UserService, user_id: int) -> Optional[str]:
    """Client code that only knows ``UserService``."""
    user = service.get_user(user_id)
    return f"{user.name} <{user.email}> {'active' if user.active else 'inactive'}"


@demo(
    "adapter.soap-user-service",
    pattern="Adapter",
    category=Category.STRUCTURAL,
    title="Modern user service over a legacy SOAP backend",
)
def run_demo() -> None:
    service = SoapUserServiceAdapter(LegacySoapClient())

    print(f"User 1: {get_user_summary(service, 1)}")
    created = service.create_user({"name": "Carol White", "email": "carol@example.com"})
    print(f"Created: {created.model_dump()}")
    print(f"All users: {[u.name for u in service.list_users()]}")
    print(f"Last envelope sent:\n  {service.client.requests[-1]}")

    try:
        service.get_user(99)
    except ExternalServiceException as e:
        print(f"SOAP fault: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
