"""
onboarding/locales/it.py — Italian texts of generated documents and emails.
"""

REGISTRATION_CONTRACT = (
    "Contratto di adesione tra \"IO - L'app per i servizi pubblici\" e {organization} "
    "per l'utilizzo dei servizi forniti dalla piattaforma."
)

USER_DELEGATION = (
    "Io sottoscritto {legal_representative}, in qualità di responsabile legale dell'ente "
    "{organization_name}, delego a {delegate} la gestione dell'attività dell'ente "
    "sulla piattaforma IO."
)

REGISTRATION_EMAIL_SUBJECT = "Richiesta di adesione a IO - L'app per i servizi pubblici"

REGISTRATION_EMAIL_CONTENT = (
    "Gentile responsabile, in allegato trova i documenti relativi alla richiesta di "
    "adesione del suo ente a IO - L'app per i servizi pubblici. "
    "La preghiamo di firmarli digitalmente e di inviarli in risposta a questa email."
)

WORK_EMAIL_CHANGED_SUBJECT = "Modifica dell'email di lavoro"

WORK_EMAIL_CHANGED_CONTENT = (
    "Ciao {given_name}, la tua email di lavoro è stata modificata con successo, "
    "da questo momento riceverai le comunicazioni al nuovo indirizzo da te scelto."
)
