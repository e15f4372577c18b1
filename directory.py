# directory.py
# Справочник участников: ядро только читает профиль, не владеет им

from extensions import db, store_errors
from exceptions import NotFound
from models import Participant


class ParticipantDirectory:

    def get(self, participant_id):
        with store_errors('participant lookup'):
            return db.session.get(Participant, participant_id, populate_existing=True)

    def exists(self, participant_id):
        return self.get(participant_id) is not None

    def is_active(self, participant_id):
        participant = self.get(participant_id)
        return participant is not None and participant.is_active

    def created_at(self, participant_id):
        participant = self.get(participant_id)
        if participant is None:
            raise NotFound('Participant', participant_id)
        return participant.created_at

    def require(self, participant_id):
        participant = self.get(participant_id)
        if participant is None:
            raise NotFound('Participant', participant_id)
        return participant
