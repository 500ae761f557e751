import os

from dotenv import load_dotenv

load_dotenv()


class RedmineConfig:
    def __init__(self):
        self._base_url = os.getenv("REDMINE_URL")
        self._api_key = os.getenv("REDMINE_API_KEY")
        self._timeout = int(os.getenv("REDMINE_TIMEOUT", "30"))

    @property
    def base_url(self):
        return self._base_url

    @property
    def api_key(self):
        return self._api_key

    @property
    def timeout(self):
        return self._timeout
