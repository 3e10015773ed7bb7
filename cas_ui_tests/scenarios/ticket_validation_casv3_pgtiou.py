"""CAS v3 proxy validation issues a PGTIOU in both JSON and XML responses."""
from __future__ import annotations

from cas_ui_tests import diagnostics
from cas_ui_tests.protocol import parse_json
from cas_ui_tests.scenarios import scenario
from cas_ui_tests.validation import ValidationClient

SERVICE = "https://apereo.github.io"
PGT_URL = "https://github.com/apereo/cas"


async def validate_request(client: ValidationClient, ticket: str, format: str = "JSON") -> str:
    body = await client.validate(SERVICE, ticket, endpoint="p3/proxyValidate", format=format, pgt_url=PGT_URL)
    diagnostics.log(body)
    return body


@scenario("ticket-validation-casv3-pgtiou")
async def ticket_validation_casv3_pgtiou(session) -> None:
    page = await session.new_page()

    async with ValidationClient(session.config) as client:
        await page.goto_login(SERVICE)
        await page.login_with()

        ticket = await page.assert_ticket_parameter()
        response = parse_json(await validate_request(client, ticket)).assert_success()
        assert response.user == "casuser", response.user
        response.assert_attributes("credentialType")
        assert response.proxy_granting_ticket and "PGTIOU-" in response.proxy_granting_ticket

        await page.goto_login(SERVICE)
        ticket = await page.assert_ticket_parameter()
        body = await validate_request(client, ticket, "XML")
        assert "<cas:proxyGrantingTicket>" in body
        assert "<cas:user>casuser</cas:user>" in body
