from prepdeck.config import DEFAULT_CORS_ORIGINS, ColumnMap, Settings, load_settings


def test_defaults():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.top_n == 12
    assert settings.preview_rows == 25
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_env_overrides():
    settings = load_settings(
        {
            "PREPDECK_TOP_N": "5",
            "PREPDECK_PREVIEW_ROWS": "10",
            "PREPDECK_CORS_ORIGINS": "https://a.example, https://b.example,",
            "PREPDECK_LOG_LEVEL": "debug",
            "PREPDECK_COLUMN_QTY": "Quantity",
        }
    )
    assert settings.top_n == 5
    assert settings.preview_rows == 10
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.log_level == "DEBUG"
    assert settings.columns == ColumnMap(qty="Quantity")


def test_malformed_numbers_fall_back():
    settings = load_settings({"PREPDECK_TOP_N": "lots", "PREPDECK_PREVIEW_ROWS": "-3"})
    assert settings.top_n == 12
    assert settings.preview_rows == 1
