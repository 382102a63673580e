import tempfile
import unittest
from pathlib import Path

from auragrow.bot import COMMAND_MENU, build_application, build_cache, build_gateway
from auragrow.config import Settings


class BuildApplicationTests(unittest.TestCase):
    def test_registers_every_menu_command(self):
        application = build_application(Settings(telegram_token="123456:TEST-TOKEN", cache_path=""))
        registered = set()
        for handlers in application.handlers.values():
            for handler in handlers:
                registered.update(handler.commands)
        assert {command.command for command in COMMAND_MENU} <= registered

    def test_empty_cache_path_keeps_cache_in_memory(self):
        cache = build_cache(Settings(telegram_token="DUMMY", cache_path=""))
        cache.set("balances:0xabc:", {"totalUsd": 1})
        assert cache.get("balances:0xabc:") == {"totalUsd": 1}

    def test_cache_path_persists_between_gateways(self):
        with tempfile.TemporaryDirectory() as tmp:
            settings = Settings(telegram_token="DUMMY", cache_path=str(Path(tmp) / "cache.json"))
            build_gateway(settings).cache.set("balances:0xabc:", {"totalUsd": 3})
            assert build_gateway(settings).cache.get("balances:0xabc:") == {"totalUsd": 3}


if __name__ == "__main__":
    unittest.main()
