"""
Unit tests for the nginx-rtmp configuration renderer.
"""

import unittest

from live_ladder.config import LiveConfig
from live_ladder.core.modules.errors import StreamPathError
from live_ladder.core.modules.system.ingest_config import hook_base_url, render_nginx_rtmp_config


class TestRenderNginxRtmpConfig(unittest.TestCase):

    def test_defaults(self):
        expected = (
            "rtmp {\n"
            "    server {\n"
            "        listen 1935;\n"
            "        chunk_size 60000;\n"
            "        ping 60s;\n"
            "        ping_timeout 30s;\n"
            "\n"
            "        application live {\n"
            "            live on;\n"
            "            wait_key on;\n"
            "            wait_video on;\n"
            "            on_publish http://127.0.0.1:8935/hooks/on_publish;\n"
            "            on_publish_done http://127.0.0.1:8935/hooks/on_publish_done;\n"
            "        }\n"
            "    }\n"
            "}\n"
        )
        self.assertEqual(render_nginx_rtmp_config(LiveConfig()), expected)

    def test_rtmp_settings_are_rendered(self):
        config = LiveConfig(rtmp_port=1936, rtmp_chunk_size=4096, rtmp_gop_cache=False,
                            rtmp_ping=90, rtmp_ping_timeout=15)

        rendered = render_nginx_rtmp_config(config)

        self.assertIn("listen 1936;", rendered)
        self.assertIn("chunk_size 4096;", rendered)
        self.assertIn("ping 90s;", rendered)
        self.assertIn("ping_timeout 15s;", rendered)
        self.assertNotIn("wait_key", rendered)

    def test_one_block_per_application(self):
        rendered = render_nginx_rtmp_config(LiveConfig(), ["live", "event", "live"])
        self.assertEqual(rendered.count("application "), 2)
        self.assertIn("application event {", rendered)

    def test_invalid_applications(self):
        with self.assertRaises(ValueError):
            render_nginx_rtmp_config(LiveConfig(), [])
        with self.assertRaises(StreamPathError):
            render_nginx_rtmp_config(LiveConfig(), ["bad app"])

    def test_hook_base_url(self):
        self.assertEqual(hook_base_url(LiveConfig(hook_host="0.0.0.0", hook_port=9000)),
                         "http://127.0.0.1:9000/hooks")
        self.assertEqual(hook_base_url(LiveConfig(hook_host="10.0.0.2")),
                         "http://10.0.0.2:8935/hooks")
        self.assertEqual(hook_base_url(LiveConfig(hook_host="::1")),
                         "http://[::1]:8935/hooks")


if __name__ == '__main__':
    unittest.main()
