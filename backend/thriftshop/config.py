# backend/thriftshop/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/thriftshop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///thriftshop.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Object storage: "local" writes under UPLOAD_FOLDER, "cloudinary" uses the remote media host
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "local")
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER")  # None -> <instance>/uploads
    UPLOAD_URL_PREFIX = os.environ.get("UPLOAD_URL_PREFIX", "/uploads")

    CLOUDINARY_CLOUD_NAME = os.environ.get("CLOUDINARY_CLOUD_NAME", "")
    CLOUDINARY_API_KEY = os.environ.get("CLOUDINARY_API_KEY", "")
    CLOUDINARY_API_SECRET = os.environ.get("CLOUDINARY_API_SECRET", "")
    CLOUDINARY_FOLDER = os.environ.get("CLOUDINARY_FOLDER", "thrift-products")

    # 5 MiB per image; whole request may carry several images
    MAX_IMAGE_BYTES = int(os.environ.get("MAX_IMAGE_BYTES", 5 * 1024 * 1024))
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 64 * 1024 * 1024))

    # Courier rates
    RAJAONGKIR_API_KEY = os.environ.get("RAJAONGKIR_API_KEY", "")
    RAJAONGKIR_BASE_URL = os.environ.get("RAJAONGKIR_BASE_URL", "https://api.rajaongkir.com/starter/")
    RAJAONGKIR_COURIER = os.environ.get("RAJAONGKIR_COURIER", "jne")

    # Federated login
    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID", "")

    # Mail dispatch for password reset tokens
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    MAIL_SENDER = os.environ.get("MAIL_SENDER", "Thriftshop <no-reply@thriftshop.local>")

    PASSWORD_RESET_TTL_MINUTES = int(os.environ.get("PASSWORD_RESET_TTL_MINUTES", 10))
    OTP_RESEND_COOLDOWN_SECONDS = 60
    PASSWORD_MIN_LENGTH = 6
    CHANGE_PASSWORD_SUCCESS_URL = os.environ.get("CHANGE_PASSWORD_SUCCESS_URL", "/success-changepassword")
    PASSWORD_RESET_URL = os.environ.get("PASSWORD_RESET_URL", "/reset-password")

    # bcrypt work factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", 12))

    HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", 15))
