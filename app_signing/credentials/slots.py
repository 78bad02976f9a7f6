"""Credential slot catalogue for each signing platform.

Slots are listed in resolution order. Later iOS slots depend on values
produced by earlier ones: the team id comes from the Apple identity slot, and
the app id must exist before push certificates or provisioning profiles can be
generated.
"""

from app_signing.enums import Platform
from app_signing.models.domain import FieldKind, SlotField, SlotSpec

MANAGE_CHOICE = "Let the build service handle the process!"
PROVIDE_CHOICE = "I want to upload my own file!"

ANDROID_KEYSTORE = SlotSpec(
    name="keystore",
    label="Android keystore",
    platform=Platform.ANDROID,
    fields=(
        SlotField("keystore", "Path to keystore:", FieldKind.FILE, env_var="EXP_ANDROID_KEYSTORE_PATH"),
        SlotField("keystoreAlias", "Keystore Alias:", env_var="EXP_ANDROID_KEYSTORE_ALIAS"),
        SlotField("keystorePassword", "Keystore Password:", FieldKind.SECRET, env_var="EXP_ANDROID_STORE_PASSWORD"),
        SlotField("keyPassword", "Key Password:", FieldKind.SECRET, env_var="EXP_ANDROID_KEY_PASSWORD"),
    ),
    managed_kind="keystore",
    strategy_message=(
        "Would you like to upload a keystore or have us generate one for you?\n"
        "If you don't know what this means, let us handle it! :)"
    ),
)

IOS_APPLE_ID = SlotSpec(
    name="appleId",
    label="Apple ID credentials",
    platform=Platform.IOS,
    fields=(
        SlotField("appleId", "What's your Apple ID?", env_var="EXP_APPLE_ID"),
        SlotField("password", "Password?", FieldKind.SECRET, env_var="EXP_APPLE_PASSWORD"),
        SlotField(
            "teamId",
            "What is your Apple Team ID (you can find that on this page: "
            "https://developer.apple.com/account/#/membership)?",
            env_var="EXP_APPLE_TEAM_ID",
        ),
    ),
    validation_kind="appleId",
)

IOS_DISTRIBUTION_CERT = SlotSpec(
    name="certP12",
    label="distribution certificate",
    platform=Platform.IOS,
    fields=(
        SlotField("certP12", "Path to P12 file:", FieldKind.FILE, env_var="EXP_DIST_CERTIFICATE_PATH"),
        SlotField("certPassword", "Certificate P12 password:", FieldKind.SECRET, env_var="EXP_DIST_CERTIFICATE_PASSWORD"),
    ),
    managed_kind="cert",
    validation_kind="cert",
    strategy_message=(
        "Do you already have a distribution certificate you'd like us to use,\n"
        "or do you want us to manage your certificates for you?"
    ),
)

IOS_PUSH_CERT = SlotSpec(
    name="pushP12",
    label="push certificate",
    platform=Platform.IOS,
    fields=(
        SlotField("pushP12", "Path to P12 file:", FieldKind.FILE, env_var="EXP_PUSH_CERTIFICATE_PATH"),
        SlotField(
            "pushPassword",
            "Push certificate P12 password (empty is OK):",
            FieldKind.SECRET,
            env_var="EXP_PUSH_CERTIFICATE_PASSWORD",
            optional=True,
        ),
    ),
    managed_kind="push",
    validation_kind="push",
    strategy_message=(
        "Do you already have a push notification certificate you'd like us to use,\n"
        "or do you want us to manage your push certificates for you?"
    ),
)

IOS_PROVISIONING_PROFILE = SlotSpec(
    name="provisioningProfile",
    label="provisioning profile",
    platform=Platform.IOS,
    fields=(
        SlotField(
            "provisioningProfile",
            "Path to .mobileprovision file:",
            FieldKind.FILE,
            env_var="EXP_PROVISIONING_PROFILE_PATH",
        ),
    ),
    managed_kind="provisioningProfile",
    validation_kind="provisioningProfile",
    strategy_message=(
        "Do you already have a provisioning profile you'd like us to use,\n"
        "or do you want us to manage your provisioning profiles for you?"
    ),
)

ANDROID_SLOTS: tuple[SlotSpec, ...] = (ANDROID_KEYSTORE,)
IOS_SLOTS: tuple[SlotSpec, ...] = (
    IOS_APPLE_ID,
    IOS_DISTRIBUTION_CERT,
    IOS_PUSH_CERT,
    IOS_PROVISIONING_PROFILE,
)

_SLOTS_BY_PLATFORM = {
    Platform.ANDROID: ANDROID_SLOTS,
    Platform.IOS: IOS_SLOTS,
}


def slots_for(platform: Platform) -> tuple[SlotSpec, ...]:
    """Return the slot specs of ``platform`` in resolution order."""
    return _SLOTS_BY_PLATFORM[platform]


def get_slot(platform: Platform, name: str) -> SlotSpec:
    """Look up a slot spec by name.

    Raises:
        KeyError: If the platform has no slot with that name
    """
    for spec in slots_for(platform):
        if spec.name == name:
            return spec
    raise KeyError(f"Unknown {platform} credential slot: {name}")
