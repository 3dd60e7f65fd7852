from enum import Enum


class HTTPMethod(Enum):
    GET = "GET"
    POST = "POST"
