from __future__ import annotations

import pytest

from codesmith_ai.agent_core.policy import PermissionConfig, PermissionMode, PermissionPolicy, ToolPermission

WRITE = ToolPermission.filesystem_write.value
READ = ToolPermission.filesystem_read.value


class _Confirm:
    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.requests = []

    async def __call__(self, request) -> bool:
        self.requests.append(request)
        return self.answer


def test_default_config_allows_reads_and_prompts_for_writes() -> None:
    cfg = PermissionConfig()

    assert cfg.mode_for(READ) == PermissionMode.allow
    assert cfg.mode_for(ToolPermission.workspace_info_read.value) == PermissionMode.allow
    assert cfg.mode_for(WRITE) == PermissionMode.prompt
    assert cfg.mode_for("terminal.execute") == PermissionMode.prompt
    assert PermissionMode("prompt-session") == PermissionMode.prompt_session


@pytest.mark.asyncio
async def test_allow_and_deny_modes() -> None:
    policy = PermissionPolicy(PermissionConfig(modes={READ: PermissionMode.allow, WRITE: PermissionMode.deny}))

    assert (await policy.check("filesystem.getFileContents", [READ])).allowed is True

    decision = await policy.check("filesystem.writeFile", [READ, WRITE])
    assert decision.allowed is False
    assert decision.permission == WRITE
    assert "denied by configuration" in decision.reason


@pytest.mark.asyncio
async def test_prompt_without_handler_is_refused() -> None:
    decision = await PermissionPolicy().check("filesystem.writeFile", [WRITE])

    assert decision.allowed is False
    assert "requires confirmation" in decision.reason


@pytest.mark.asyncio
async def test_prompt_asks_on_every_call() -> None:
    confirm = _Confirm()
    policy = PermissionPolicy(confirm=confirm)

    for _ in range(2):
        assert (await policy.check("filesystem.writeFile", [WRITE], {"file_path": "a"}, "c1")).allowed

    assert len(confirm.requests) == 2
    assert confirm.requests[0].params == {"file_path": "a"}


@pytest.mark.asyncio
async def test_user_refusal_is_reported() -> None:
    policy = PermissionPolicy(confirm=_Confirm(answer=False))

    decision = await policy.check("filesystem.writeFile", [WRITE], conversation_id="c1")

    assert decision.allowed is False
    assert "refused by the user" in decision.reason


@pytest.mark.asyncio
async def test_prompt_session_remembers_grant_per_conversation() -> None:
    confirm = _Confirm()
    policy = PermissionPolicy(PermissionConfig(modes={WRITE: PermissionMode.prompt_session}), confirm=confirm)

    await policy.check("filesystem.writeFile", [WRITE], conversation_id="c1")
    await policy.check("codeManipulation.applyWorkspaceEdit", [WRITE], conversation_id="c1")
    assert len(confirm.requests) == 1

    await policy.check("filesystem.writeFile", [WRITE], conversation_id="c2")
    assert len(confirm.requests) == 2

    policy.clear_session("c1")
    await policy.check("filesystem.writeFile", [WRITE], conversation_id="c1")
    await policy.check("filesystem.writeFile", [WRITE], conversation_id="c2")
    assert len(confirm.requests) == 3


@pytest.mark.asyncio
async def test_refused_session_prompt_is_not_remembered() -> None:
    confirm = _Confirm(answer=False)
    policy = PermissionPolicy(PermissionConfig(modes={WRITE: PermissionMode.prompt_session}), confirm=confirm)

    await policy.check("filesystem.writeFile", [WRITE], conversation_id="c1")
    confirm.answer = True
    assert (await policy.check("filesystem.writeFile", [WRITE], conversation_id="c1")).allowed
    assert len(confirm.requests) == 2


@pytest.mark.asyncio
async def test_sync_confirmation_handler_is_accepted() -> None:
    policy = PermissionPolicy(confirm=lambda request: request.tool_name == "filesystem.writeFile")

    assert (await policy.check("filesystem.writeFile", [WRITE])).allowed is True
    assert (await policy.check("codeManipulation.applyWorkspaceEdit", [WRITE])).allowed is False


@pytest.mark.asyncio
async def test_allow_all_grants_unknown_permissions() -> None:
    decision = await PermissionPolicy.allow_all().check("terminal.run", ["terminal.execute", WRITE])
    assert decision.allowed is True
