"""
Container types returned by PowerMax objects.
"""


class ResponseList(list):
    """List type returned by PowerMax object.

    :ivar dict headers: The headers returned in the request.

    """
    def __init__(self, l=()):
        super(ResponseList, self).__init__(l)
        self.headers = {}


class ResponseDict(dict):
    """Dict type returned by PowerMax object.

    :ivar dict headers: The headers returned in the request.

    """
    def __init__(self, d=()):
        super(ResponseDict, self).__init__(d)
        self.headers = {}
