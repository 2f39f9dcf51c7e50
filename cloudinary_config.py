# cloudinary_config.py
import os
import cloudinary

# Company logo lives under one fixed public id, re-uploads replace it
LOGO_FOLDER = os.getenv("CLOUDINARY_LOGO_FOLDER", "fleet-reports/branding")
LOGO_PUBLIC_ID = "company_logo"

_configured = False


def _env(name: str) -> str | None:
    v = os.getenv(name)
    # pasted secrets often carry quotes or a trailing newline
    return v.strip().strip('"').strip("'") if v else None


def _sdk_settings() -> dict | None:
    keys = {
        "cloud_name": _env("CLOUDINARY_CLOUD_NAME"),
        "api_key": _env("CLOUDINARY_API_KEY"),
        "api_secret": _env("CLOUDINARY_API_SECRET"),
    }
    if all(keys.values()):
        return keys

    url = _env("CLOUDINARY_URL")
    if url:
        return {"cloudinary_url": url}
    return None


def init_cloudinary() -> None:
    """Configure the SDK before the first logo upload. RuntimeError without credentials."""
    global _configured
    if _configured:
        return

    settings = _sdk_settings()
    if settings is None:
        raise RuntimeError(
            "Logo storage not configured. Set CLOUDINARY_CLOUD_NAME, "
            "CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET (or CLOUDINARY_URL)."
        )

    cloudinary.config(secure=True, **settings)
    _configured = True
    print("✅ Cloudinary ready for logo uploads:", settings.get("cloud_name", "via CLOUDINARY_URL"))
