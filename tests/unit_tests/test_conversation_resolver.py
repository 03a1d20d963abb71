"""Unit tests for sender/conversation.py."""

import httpx
import pytest

from notify_send.errors import ParseError
from notify_send.models.work_item import UserDataEntity
from notify_send.sender.conversation import ConversationResolver
from notify_send.sender.send_loop import Failed
from notify_send.sender.send_loop import SendAttemptLoop
from notify_send.sender.send_loop import Throttled
from tests.consts import BOT_APP_ID
from tests.consts import SERVICE_URL
from tests.fixtures.bot_connector_fixtures import conversation_created
from tests.fixtures.bot_connector_fixtures import request_json


@pytest.fixture
def resolver(http_client, no_sleep, mock_user_data_repo):
    return ConversationResolver(
        SendAttemptLoop(http_client, sleep=no_sleep),
        mock_user_data_repo,
        bot_app_id=BOT_APP_ID,
        max_attempts=2,
    )


class TestKnownConversation:
    """Tests for recipients whose conversation id is already known."""

    @pytest.mark.asyncio
    async def test_user_with_conversation_makes_no_create_call(
        self, resolver, bot_connector, mock_user_data_repo, user_work_item
    ):
        """Test a known 1:1 conversation is used as is and the directory row refreshed."""
        resolution = await resolver.resolve(user_work_item.recipient, "bot-token")
        await resolution.directory_write

        assert resolution.conversation_id == "a:1abcDEF"
        assert resolution.created is False
        assert bot_connector.calls("conversations") == []
        mock_user_data_repo.get.assert_not_awaited()
        mock_user_data_repo.upsert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_team_makes_no_directory_write(self, resolver, bot_connector, mock_user_data_repo, team_work_item):
        """Test a team General channel is used without touching the directory."""
        resolution = await resolver.resolve(team_work_item.recipient, "bot-token")

        assert resolution.conversation_id == "19:team-general@thread.skype"
        assert resolution.directory_write is None
        assert bot_connector.calls("conversations") == []
        mock_user_data_repo.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_conversation_from_directory(self, resolver, bot_connector, mock_user_data_repo, new_user_work_item):
        """Test the stored conversation id is used when the work item has none."""
        mock_user_data_repo.get.return_value = UserDataEntity(
            aad_id="aad-1", service_url=SERVICE_URL, conversation_id="a:1stored"
        )
        recipient = new_user_work_item.recipient

        resolution = await resolver.resolve(recipient, "bot-token")
        await resolution.directory_write

        assert resolution.conversation_id == "a:1stored"
        assert recipient.conversation_id == "a:1stored"
        assert bot_connector.calls("conversations") == []
        mock_user_data_repo.get.assert_awaited_once_with("aad-1")

    @pytest.mark.asyncio
    async def test_lookup_skipped_when_conversation_known(self, resolver, mock_user_data_repo, user_work_item):
        """Test lookup() does not read the directory for a known conversation."""
        assert await resolver.lookup(user_work_item.recipient) is None
        mock_user_data_repo.get.assert_not_awaited()


class TestCreateConversation:
    """Tests for lazily creating a 1:1 conversation."""

    @pytest.mark.asyncio
    async def test_create_conversation(self, resolver, bot_connector, mock_user_data_repo, new_user_work_item):
        """Test a 201 create response sets the conversation id and stores it in the directory."""
        bot_connector.script("conversations", conversation_created("19:abcDEF"))
        recipient = new_user_work_item.recipient

        resolution = await resolver.resolve(recipient, "bot-token")
        await resolution.directory_write

        assert resolution.created is True
        assert resolution.conversation_id == "19:abcDEF"
        assert recipient.conversation_id == "19:abcDEF"

        mock_user_data_repo.upsert.assert_awaited_once()
        stored = mock_user_data_repo.upsert.await_args.args[0]
        assert stored.aad_id == "aad-1"
        assert stored.conversation_id == "19:abcDEF"

    @pytest.mark.asyncio
    async def test_create_conversation_request(self, resolver, bot_connector, new_user_work_item):
        """Test the create call names the bot, the tenant and the member."""
        bot_connector.script("conversations", conversation_created())

        resolution = await resolver.resolve(new_user_work_item.recipient, "bot-token")
        await resolution.directory_write

        request = bot_connector.calls("conversations")[0]
        body = request_json(request)
        assert str(request.url) == "https://smba.trafficmanager.net/emea/v3/conversations"
        assert request.headers["Authorization"] == "Bearer bot-token"
        assert body["bot"] == {"id": f"28:{BOT_APP_ID}"}
        assert body["isGroup"] is False
        assert body["tenantId"] == "tenant-1"
        assert body["members"] == [{"id": "29:user-1"}]

    @pytest.mark.asyncio
    async def test_create_conversation_throttled_counts(self, resolver, bot_connector, new_user_work_item):
        """Test throttles on the create call are carried on the resolution."""
        bot_connector.script("conversations", httpx.Response(429), conversation_created())

        resolution = await resolver.resolve(new_user_work_item.recipient, "bot-token")
        await resolution.directory_write

        assert resolution.conversation_id == "a:1newConversation"
        assert resolution.throttle_count == 1
        assert resolution.status_codes == [429, 201]

    @pytest.mark.asyncio
    async def test_create_conversation_failed(self, resolver, bot_connector, mock_user_data_repo, new_user_work_item):
        """Test a non-201, non-429 create response is returned as a Failed outcome."""
        bot_connector.script("conversations", 403)

        resolution = await resolver.resolve(new_user_work_item.recipient, "bot-token")

        assert resolution.resolved is False
        assert isinstance(resolution.creation_outcome, Failed)
        assert resolution.creation_outcome.status_code == 403
        assert resolution.directory_write is None
        mock_user_data_repo.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_conversation_throttled_out(self, resolver, bot_connector, new_user_work_item):
        """Test exhausting the budget on 429s returns a Throttled outcome."""
        bot_connector.script("conversations", 429)

        resolution = await resolver.resolve(new_user_work_item.recipient, "bot-token")

        assert resolution.resolved is False
        assert isinstance(resolution.creation_outcome, Throttled)
        assert resolution.throttle_count == 2

    @pytest.mark.asyncio
    async def test_create_response_without_id_raises_parse_error(self, resolver, bot_connector, new_user_work_item):
        """Test a 201 whose body has no conversation id raises ParseError."""
        bot_connector.script("conversations", httpx.Response(201, json={"activityId": "x"}))

        with pytest.raises(ParseError):
            await resolver.resolve(new_user_work_item.recipient, "bot-token")
