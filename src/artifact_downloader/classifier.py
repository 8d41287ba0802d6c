"""
Artifact type classification.

Build registry artifacts are classified from their file names. Release
distribution artifacts are classified from app metadata instead, since a
release carries no file name of its own.
"""

from typing import Optional

from artifact_downloader.constants import (
    AAB_EXTENSION,
    APK_EXTENSION,
    ARTIFACT_TYPE_AAB,
    ARTIFACT_TYPE_AD_HOC,
    ARTIFACT_TYPE_APK,
    ARTIFACT_TYPE_APP_STORE,
    ARTIFACT_TYPE_ARCHIVE,
    ARTIFACT_TYPE_DEVELOPMENT,
    ARTIFACT_TYPE_IPA,
    ARTIFACT_TYPE_LOGS,
    ARTIFACT_TYPE_XCARCHIVE,
    ARTIFACT_TYPE_XCRESULT,
    IPA_COMPATIBLE_TYPES,
    IPA_EXTENSION,
    PLATFORM_ANDROID,
    XCARCHIVE_EXTENSION,
)

# Substring rules in priority order
_SUBSTRING_RULES = (
    (("development",), ARTIFACT_TYPE_DEVELOPMENT),
    (("ad-hoc", "ad_hoc"), ARTIFACT_TYPE_AD_HOC),
    (("app-store", "app_store"), ARTIFACT_TYPE_APP_STORE),
    (("logs",), ARTIFACT_TYPE_LOGS),
    (("xcresult",), ARTIFACT_TYPE_XCRESULT),
    ((XCARCHIVE_EXTENSION,), ARTIFACT_TYPE_XCARCHIVE),
)


def classify(file_name: str, platform_hint: Optional[str] = None) -> str:
    """
    Infer an artifact type from its file name.

    Matching is case-insensitive and follows a fixed priority: development,
    ad_hoc, app_store, logs, xcresult, xcarchive, then the `.ipa`, `.apk` and
    `.aab` extensions. Anything else is an `archive`, except that an Android
    platform hint turns an unrecognized name into an `apk`.

    Parameters:
        file_name (str): The artifact file name.
        platform_hint (Optional[str]): Platform of the owning app, if known.

    Returns:
        str: One of the artifact type vocabulary values.
    """
    lowered = file_name.lower()

    for needles, artifact_type in _SUBSTRING_RULES:
        if any(needle in lowered for needle in needles):
            return artifact_type

    if lowered.endswith(IPA_EXTENSION):
        return ARTIFACT_TYPE_IPA
    if lowered.endswith(APK_EXTENSION):
        return ARTIFACT_TYPE_APK
    if lowered.endswith(AAB_EXTENSION):
        return ARTIFACT_TYPE_AAB

    if platform_hint and platform_hint.lower() == PLATFORM_ANDROID:
        return ARTIFACT_TYPE_APK
    return ARTIFACT_TYPE_ARCHIVE


def matches_artifact_type(actual: str, requested: Optional[str]) -> bool:
    """
    Check whether an artifact type satisfies a requested type filter.

    A request for `ipa` accepts every IPA-compatible type (development, ad_hoc,
    app_store and ipa); any other request needs an exact match.
    """
    if not requested:
        return True
    if requested == ARTIFACT_TYPE_IPA:
        return actual in IPA_COMPATIBLE_TYPES
    return actual == requested


def classify_distribution_app(
    bundle_id: Optional[str],
    package_name: Optional[str],
    file_name: Optional[str] = None,
) -> str:
    """
    Derive the artifact type of a release distribution app from its metadata.

    iOS apps (bundle id present) ship `ipa` files. Android apps (package name
    present) ship `aab` when the file name says so and `apk` otherwise.
    """
    if bundle_id:
        return ARTIFACT_TYPE_IPA
    if package_name:
        if file_name and file_name.lower().endswith(AAB_EXTENSION):
            return ARTIFACT_TYPE_AAB
        return ARTIFACT_TYPE_APK
    return ARTIFACT_TYPE_ARCHIVE
