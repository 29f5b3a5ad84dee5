"""
Tests for environment-driven settings.
"""

from webi_catalog.core.config import Settings


class TestSettingsFromEnvironment:
    """Tests for Settings read from WEBI_* variables and GITHUB_TOKEN."""

    def test_defaults(self):
        settings = Settings()
        assert settings.github_token is None
        assert settings.repo_owner == "webinstall"
        assert settings.repo_name == "webi-installers"
        assert settings.batch_size == 10
        assert settings.batch_delay_seconds == 0.1
        assert settings.tree_ttl_seconds == 86400
        assert settings.catalog_ttl_seconds == 1800
        assert settings.file_cache_size == 1000
        assert settings.warm_catalog is True

    def test_token_and_overrides(self, clean_env):
        clean_env.setenv("GITHUB_TOKEN", "  abc  ")
        clean_env.setenv("WEBI_REPO_OWNER", "me")
        clean_env.setenv("WEBI_REPO_BRANCH", "dev")
        clean_env.setenv("WEBI_BATCH_SIZE", "4")
        clean_env.setenv("WEBI_WARM_CATALOG", "off")

        settings = Settings()
        assert settings.github_token == "abc"
        assert settings.batch_size == 4
        assert settings.warm_catalog is False
        assert settings.homepage_base == "https://github.com/me/webi-installers/tree/dev"

    def test_blank_token_is_unauthenticated(self, clean_env):
        clean_env.setenv("GITHUB_TOKEN", "   ")
        assert Settings().github_token is None

    def test_empty_variable_keeps_default(self, clean_env):
        clean_env.setenv("WEBI_REPO_NAME", "")
        assert Settings().repo_name == "webi-installers"

    def test_invalid_values_fall_back_to_defaults(self, clean_env, caplog):
        clean_env.setenv("WEBI_BATCH_SIZE", "lots")
        clean_env.setenv("WEBI_CATALOG_TTL_SECONDS", "-5")
        clean_env.setenv("WEBI_WARM_CATALOG", "maybe")
        clean_env.setenv("WEBI_FILE_CACHE_SIZE", "50")

        settings = Settings()
        assert settings.batch_size == 10
        assert settings.catalog_ttl_seconds == 1800
        assert settings.warm_catalog is True
        assert settings.file_cache_size == 50
        assert "WEBI_BATCH_SIZE" in caplog.text

    def test_keyword_arguments_override_environment(self, clean_env):
        clean_env.setenv("WEBI_BATCH_SIZE", "4")

        settings = Settings(batch_size=2)
        assert settings.batch_size == 2

    def test_homepage_base_default(self):
        assert Settings().homepage_base == "https://github.com/webinstall/webi-installers/tree/main"
