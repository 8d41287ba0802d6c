import pytest

from artifact_downloader.classifier import (
    classify,
    classify_distribution_app,
    matches_artifact_type,
)

pytestmark = [pytest.mark.unit]


class TestClassify:
    @pytest.mark.parametrize(
        "file_name, expected",
        [
            ("MyApp Development.ipa", "development"),
            ("MyApp 1.0.0 ad-hoc.ipa", "ad_hoc"),
            ("MyApp_1.0.0_AD_HOC.ipa", "ad_hoc"),
            ("MyApp app-store.ipa", "app_store"),
            ("MyApp_App_Store.ipa", "app_store"),
            ("Build Logs.zip", "logs"),
            ("MyApp.xcresult.zip", "xcresult"),
            ("MyApp.xcarchive.zip", "xcarchive"),
            ("MyApp.ipa", "ipa"),
            ("app-release.apk", "apk"),
            ("app-release.aab", "aab"),
            ("something.zip", "archive"),
        ],
    )
    def test_classification_examples(self, file_name, expected):
        assert classify(file_name) == expected

    def test_priority_development_over_ad_hoc(self):
        assert classify("development-ad-hoc.ipa") == "development"

    def test_priority_logs_over_extension(self):
        assert classify("logs-export.ipa") == "logs"

    def test_android_hint_defaults_to_apk(self):
        assert classify("release-build", platform_hint="android") == "apk"
        assert classify("release-build", platform_hint="ANDROID") == "apk"

    def test_android_hint_does_not_override_extension(self):
        assert classify("release.aab", platform_hint="android") == "aab"

    def test_ios_hint_keeps_archive(self):
        assert classify("release-build", platform_hint="ios") == "archive"


class TestMatchesArtifactType:
    @pytest.mark.parametrize(
        "actual", ["development", "ad_hoc", "app_store", "ipa"]
    )
    def test_ipa_request_matches_ipa_compatible_types(self, actual):
        assert matches_artifact_type(actual, "ipa") is True

    @pytest.mark.parametrize("actual", ["logs", "xcresult", "xcarchive", "apk"])
    def test_ipa_request_rejects_other_types(self, actual):
        assert matches_artifact_type(actual, "ipa") is False

    def test_no_request_matches_everything(self):
        assert matches_artifact_type("logs", None) is True

    def test_other_requests_need_exact_match(self):
        assert matches_artifact_type("ad_hoc", "ad_hoc") is True
        assert matches_artifact_type("ipa", "ad_hoc") is False


class TestClassifyDistributionApp:
    def test_bundle_id_means_ipa(self):
        assert classify_distribution_app("com.example.app", None) == "ipa"

    def test_package_name_means_apk(self):
        assert classify_distribution_app(None, "com.example.app") == "apk"

    def test_package_name_with_aab_file(self):
        assert (
            classify_distribution_app(None, "com.example.app", "release.AAB") == "aab"
        )

    def test_neither_is_archive(self):
        assert classify_distribution_app(None, None) == "archive"
