"""Login with tickets in DynamoDB, then check the health endpoint answers."""
from __future__ import annotations

from cas_ui_tests import diagnostics
from cas_ui_tests.errors import RequestError
from cas_ui_tests.scenarios import scenario
from cas_ui_tests.validation import RequestResult, ValidationClient


@scenario("dynamodb-ticket-service-registry")
async def dynamodb_ticket_service_registry(session) -> None:
    page = await session.new_page()
    await page.goto_login()
    await page.login_with()
    await page.assert_cookie()

    health_url = session.config.url("actuator/health")
    await page.goto(health_url)

    def on_success(result: RequestResult) -> None:
        diagnostics.log(f"Health check answered {result.status_code}")

    def on_error(error: RequestError) -> None:
        raise error

    async with ValidationClient(session.config) as client:
        await client.do_get(health_url, on_success, on_error, headers={"Content-Type": "application/json"})
