import json

from click.testing import CliRunner

from wallet_bridge.cli.main import main


def _json_line(output: str):
    line = next(line for line in output.splitlines() if line.startswith("{"))
    return json.loads(line)


def invoke(*args, env=None):
    return CliRunner().invoke(main, ["--log-level", "ERROR", *args], env=env)


class TestUriCommands:
    def test_new_json(self):
        result = invoke("uri", "new", "--json", "--bridge", "https://bridge.example.org")
        assert result.exit_code == 0
        data = json.loads(result.output[result.output.index("{"):])
        assert data["uri"].startswith(f"wc:{data['session_id']}@1?bridge=https%3A%2F%2Fbridge.example.org")
        assert len(data["key"]) == 64

    def test_new_text(self):
        result = invoke("uri", "new")
        assert result.exit_code == 0
        assert "wc:" in result.output

    def test_check_pass(self):
        uri = "wc:" + "1" * 36 + "@1?bridge=https%3A%2F%2Fbridge.walletconnect.org&key=" + "f" * 64
        result = invoke("uri", "check", uri)
        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_check_fail(self):
        result = invoke("uri", "check", "wc:short@1?bridge=x&key=y")
        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_links_json(self):
        result = invoke("uri", "links", "wc:abc@2?symKey=1", "--json")
        assert result.exit_code == 0
        links = json.loads(result.output[result.output.index("{"):])
        assert links["metamask"] == "metamask://wc?uri=wc%3Aabc%402%3FsymKey%3D1"
        assert links["coinbase"].startswith("cbwallet://wc?uri=")


class TestConnectCommand:
    def test_manual_connect_returns_uri(self):
        env = {"WALLETCONNECT_PROJECT_ID": "", "WALLET_RELAY_URL": ""}
        result = invoke("connect", "42", "--json", env=env)
        assert result.exit_code == 0
        data = _json_line(result.output)
        assert data["uri"].startswith("wc:")
        assert data["session_id"]


class TestConfigCommand:
    def test_masks_project_id(self):
        result = invoke("config", env={"WALLETCONNECT_PROJECT_ID": "abcdef123456", "CHAIN_ID": "56"})
        assert result.exit_code == 0
        assert "abcdef..." in result.output
        assert "abcdef123456" not in result.output
        assert "56" in result.output
