# config.py
import os

from dotenv import load_dotenv

load_dotenv()


def env_first(*names):
    """Value of the first set environment variable among names"""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")

    # "google" talks to the Sheets API, "workbook" writes local .xlsx files
    SHEETS_BACKEND = os.getenv("SHEETS_BACKEND", "google")
    GOOGLE_SERVICE_ACCOUNT_KEY = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "service-account.json")
    WORKBOOK_DIR = os.getenv("WORKBOOK_DIR", "sheets")

    # Empty tab name means "use the first tab of the spreadsheet"
    SHEET_TAB_NAME = os.getenv("SHEET_TAB_NAME", "")
    DEFAULT_TAB_NAME = os.getenv("DEFAULT_TAB_NAME", "Sheet1")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Destination sheets per visa category, matched in this order
    SHEET_TARGETS = {
        "visit": [
            {
                "id": os.getenv("VISIT_H_H"),
                "name": "Visa-H_H",
                "countries": ["Thailand", "Malaysia", "Indonesia", "Azerbaijan",
                              "Singapore", "Hong-Kong", "Maldives"],
            },
        ],
        "study": [
            {
                "id": env_first("STUDY_SHEET_FRANCE", "STUDY_SHEET_Farance"),
                "name": "Study_France",
                "countries": ["France", "Sweden", "Germany", "Lithuania", "Cyprus", "Europe"],
            },
            {
                "id": os.getenv("STUDY_SHEET_UK"),
                "name": "Study-UK",
                "countries": ["UK", "Australia", "New Zealand", "Canada", "USA"],
            },
            {
                "id": env_first("STUDY_SHEET_CHINA", "STUDY_SHEET_China"),
                "name": "Study_China",
                "countries": ["Georgia", "South Korea", "China", "Malaysia"],
            },
        ],
    }


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SHEETS_BACKEND = "workbook"
    SHEET_TAB_NAME = ""
    DEFAULT_TAB_NAME = "Sheet1"
    SHEET_TARGETS = {
        "visit": [
            {"id": "S1", "name": "Visa-H_H", "countries": ["Thailand", " Malaysia"]},
        ],
        "study": [
            {"id": "S2", "name": "Study_France", "countries": ["France", "Germany"]},
            {"id": "S3", "name": "Study-UK", "countries": ["UK", "Canada"]},
            {"id": None, "name": "Study_China", "countries": ["China"]},
        ],
    }
