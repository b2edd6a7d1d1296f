import pytest

from flow_api_client import FlowClient, FlowConfigError, load_settings

REQUIRED = {
    "FLOW_SITE_URL": "https://studio.shotgunstudio.com",
    "FLOW_SCRIPT_NAME": "pipeline_script",
    "FLOW_SCRIPT_KEY": "s3cr3t",
}


def test_settings_from_environ_only(tmp_path):
    settings = load_settings(env_files=[tmp_path / "missing.env"], environ=REQUIRED)
    assert settings.site_url == "https://studio.shotgunstudio.com"
    assert settings.script_name == "pipeline_script"
    assert settings.script_key == "s3cr3t"
    assert settings.api_version == "v1.1"


def test_settings_from_env_files_in_order(tmp_path):
    near = tmp_path / "near.env"
    far = tmp_path / "far.env"
    near.write_text("FLOW_SCRIPT_NAME=near_script\nFLOW_SCRIPT_KEY=near_key\n")
    far.write_text(
        "FLOW_SITE_URL=https://far.shotgunstudio.com\n"
        "FLOW_SCRIPT_NAME=far_script\n"
        "FLOW_SCRIPT_KEY=far_key\n"
        "FLOW_API_VERSION=v1\n"
    )

    settings = load_settings(env_files=[near, far], environ={"FLOW_SCRIPT_KEY": "env_key"})

    assert settings.site_url == "https://far.shotgunstudio.com"
    assert settings.script_name == "near_script"
    assert settings.script_key == "env_key"
    assert settings.api_version == "v1"


@pytest.mark.parametrize("missing", sorted(REQUIRED))
def test_missing_required_variable(tmp_path, missing):
    environ = {k: v for k, v in REQUIRED.items() if k != missing}
    with pytest.raises(FlowConfigError, match=missing):
        load_settings(env_files=[], environ=environ)


def test_empty_value_counts_as_missing():
    environ = dict(REQUIRED, FLOW_SCRIPT_KEY="")
    with pytest.raises(FlowConfigError, match="FLOW_SCRIPT_KEY"):
        load_settings(env_files=[], environ=environ)


def test_client_from_env(mock_session, clock):
    client = FlowClient.from_env(
        env_files=[], environ=REQUIRED, session=mock_session, clock=clock
    )
    assert client.script_name == "pipeline_script"
    assert client.is_authenticated()
    assert mock_session.post.call_args[0][0] == (
        "https://studio.shotgunstudio.com/api/v1.1/auth/access_token"
    )


def test_client_from_env_fails_before_network(mock_session):
    with pytest.raises(FlowConfigError):
        FlowClient.from_env(env_files=[], environ={}, session=mock_session)
    mock_session.post.assert_not_called()
