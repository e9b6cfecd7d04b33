import httpx


class RecordingUpstream:
    """
    ``httpx.MockTransport`` handler that replays scripted answers and records
    every request it receives. The last answer repeats once the script runs
    out. An answer is a status code (a fresh empty response each time), a
    response, an exception to raise, or a callable taking the request.
    """

    def __init__(self, *answers):
        self.answers = list(answers) or [200]
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, int):
            return httpx.Response(answer)
        if callable(answer):
            return answer(request)
        return answer

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def calls(self) -> int:
        return len(self.requests)
