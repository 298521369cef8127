"""Errors returned to clients in command acknowledgements."""


class RoomError(Exception):
    code = 'InternalError'
    message = 'Something went wrong'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_ack(self):
        return {'ok': False, 'error': self.code, 'message': self.message}


class RoomNotFound(RoomError):
    code = 'RoomNotFound'
    message = 'Room not found'


class RoomFull(RoomError):
    code = 'RoomFull'
    message = 'Room is full'


class NotInRoom(RoomError):
    code = 'NotInRoom'
    message = 'Not in room'


class NeedTwoPlayers(RoomError):
    code = 'NeedTwoPlayers'
    message = 'Need two players'


class SecretsMissing(RoomError):
    code = 'SecretsMissing'
    message = 'Both players need secrets'


class InternalError(RoomError):
    pass
