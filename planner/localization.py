import logging

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "ro"

STRINGS: dict[str, dict[str, str]] = {
    "ro": {
        # navigation and engine
        "button_back": "⬅️ Înapoi",
        "button_cancel": "❌ Anulează",
        "cancelled": "Operațiune anulată.",
        "done": "Gata.",
        "error_generic": "A apărut o eroare. Încearcă din nou.",
        "miss_unknown_button": "Buton necunoscut.",
        "miss_stale_button": "Acest buton nu mai este activ.",
        "miss_use_buttons": "Te rog folosește butoanele de mai sus sau /cancel.",
        "session_expired": "Sesiunea a expirat. Începe din nou cu /{command}",
        # validation
        "error_empty": "Mesajul nu poate fi gol.",
        "error_too_long": "Textul este prea lung.",
        "error_invalid_value": "Valoare invalidă.",
        "error_date_format": "Dată invalidă. Folosește formatul ZZ/LL/AAAA, de ex. 25/01/2025.",
        "error_time_format": "Oră invalidă. Folosește formatul HH:MM, de ex. 10:30.",
        "error_song_format": "Format invalid. Folosește: Titlu | Tonalitate | Tempo",
        "error_save": "Nu s-a putut salva. Încearcă din nou.",
        "error_event_incomplete": "Evenimentul nu este complet. Folosește Înapoi pentru a completa.",
        "error_event_datetime": "Data sau ora evenimentului este invalidă.",
        "error_event_save": "Evenimentul nu a putut fi salvat. Încearcă din nou.",
        "error_link": "Linkul trebuie să înceapă cu http:// sau https://",
        "error_key": "Tonalitate invalidă (ex.: C, F#m, Bb).",
        "error_tempo": "Tempo invalid (un număr între 20 și 300).",
        "error_chart_empty": "Acordurile nu pot fi goale.",
        # event wizard
        "wizard_select_template": "📅 Eveniment nou\n\nAlege tipul evenimentului:",
        "wizard_select_date": "📅 {title}\n\nAlege data:",
        "wizard_enter_date": "Scrie data în formatul ZZ/LL/AAAA:",
        "wizard_select_time": "📅 {date}\n\nAlege ora (⭐ = implicit):",
        "wizard_enter_time": "Scrie ora în formatul HH:MM:",
        "wizard_select_location": "📍 Alege locația:",
        "wizard_enter_location": "Scrie locația:",
        "wizard_add_songs": (
            "🎵 Alege cântările ({count} selectate).\n"
            "Poți scrie și cântări noi, câte una pe linie: Titlu | Tonalitate | Tempo"
        ),
        "wizard_enter_songs": (
            "Scrie cântările, câte una pe linie:\nTitlu | Tonalitate | Tempo\n\n"
            "Sau scrie „gata” / „skip”."
        ),
        "wizard_confirm": "Confirmi evenimentul?",
        "template_sunday": "⛪ Serviciu de duminică",
        "template_rehearsal": "🎸 Repetiție",
        "weekdays_short": "Lun,Mar,Mie,Joi,Vin,Sâm,Dum",
        "button_custom_date": "📝 Altă dată",
        "button_custom_time": "📝 Altă oră",
        "button_custom_location": "📝 Altă locație",
        "button_songs_done": "✅ Gata",
        "button_songs_skip": "⏭ Fără cântări",
        "button_songs_new": "➕ Cântări noi",
        "button_confirm": "✅ Confirmă",
        "button_edit": "✏️ Modifică",
        "songs_added": "Au fost adăugate {count} cântări.",
        "song_selected": "Adăugat: {title}",
        "song_removed": "Eliminat: {title}",
        "song_not_found": "Cântarea nu mai există.",
        "event_created": "✅ Eveniment creat!",
        "event_summary": "📌 {title}\n📅 {date} {time}\n📍 {location}\n📝 {description}",
        "setlist_header": "🎵 Cântări ({count}):",
        "setlist_empty": "🎵 Fără cântări",
        # songs
        "field_title": "Titlu",
        "field_artist": "Artist",
        "field_key": "Tonalitate",
        "field_tempo": "Tempo",
        "field_youtube": "YouTube",
        "field_chords": "Acorduri",
        "field_capo": "Capo",
        "field_time": "Măsură",
        "songs_list_header": "🎵 Cântări ({count}), pagina {page}/{pages}:",
        "songs_search_header": "🔍 Rezultate pentru „{query}” ({count}):",
        "songs_empty": "Nu există cântări.",
        "button_prev": "◀️",
        "button_next": "▶️",
        "button_add_song": "➕ Adaugă cântare",
        "button_edit_song": "✏️ Modifică",
        "button_delete_song": "🗑 Șterge",
        "button_delete_yes": "🗑 Da, șterge",
        "button_back_to_list": "⬅️ Lista",
        "song_edit_menu": "Ce vrei să modifici la „{title}”?",
        "song_edit_prompt": "Scrie noua valoare pentru {field} („{title}”).\nScrie - pentru a șterge valoarea.",
        "song_updated": "✅ Cântare actualizată.",
        "song_add_prompt": "Scrie cântarea nouă:\nTitlu | Tonalitate | Tempo",
        "song_saved": "✅ Cântare salvată.",
        "song_delete_confirm": "„{title}” este folosită în {count} liste. Ștergi oricum?",
        "song_deleted": "🗑 Cântare ștearsă.",
        # chords
        "chords_pick_song": "🎸 Alege cântarea:",
        "chords_song_header": "🎸 {title}: {count} variante de acorduri",
        "button_add_chart": "➕ Adaugă acorduri",
        "chord_select_key": "🎸 {title}\n\nAlege tonalitatea:",
        "button_key_from_chart": "📄 Din antetul textului",
        "key_from_chart": "din antet",
        "chord_enter_chart": (
            "🎸 {title} ({chord_key})\n\nTrimite acordurile în format ChordPro.\n"
            "Poți începe cu liniile KEY:, CAPO:, TIME:"
        ),
        "chart_saved": "✅ Acorduri salvate.",
        "chart_not_found": "Acordurile nu mai există.",
        # events
        "events_none": "Nu există evenimente programate.",
        "event_not_found": "Evenimentul nu mai există.",
        "attendance_counts": "✅ {yes}  ❌ {no}  ❓ {maybe}",
        "attendance_saved": "Răspuns salvat.",
        "button_yes": "✅ Vin",
        "button_no": "❌ Nu vin",
        "button_maybe": "❓ Poate",
        # help
        "admin_only": "Doar administratorii pot face asta.",
        "help_header": "Comenzi:",
        "help_empty": "Lista de comenzi este goală.",
        "usage": "Utilizare: {help}",
        "help_newevent": "/newevent - creează un eveniment",
        "help_songs": "/songs [căutare] - biblioteca de cântări",
        "help_chords": "/chords - acorduri",
        "help_events": "/events - evenimente viitoare",
        "help_cancel": "/cancel - anulează operațiunea curentă",
        "help_help": "/help - lista de comenzi",
        "help_start": "/start - mesaj de bun venit",
        "help_register": "/register - alege rolurile tale în echipă",
        "help_myroles": "/myroles - profilul și rolurile tale",
        "help_language": "/language - schimbă limba",
        "help_assignrole": "/assignrole @utilizator Rol - atribuie un rol",
        "nothing_to_cancel": "Nu există nicio operațiune de anulat.",
        "welcome": (
            "Bine ai venit, {name}! 🙏\n\n"
            "Folosește /register pentru a-ți alege rolurile și /help pentru lista de comenzi."
        ),
        # registration and roles
        "register_prompt": "Alege rolurile în care slujești (poți alege mai multe):",
        "button_roles_done": "✅ Gata",
        "role_selected": "Ai ales {role}",
        "role_removed": "Ai renunțat la {role}",
        "roles_none": "Niciun rol ales încă.",
        "registration_complete": "✅ Înregistrare completă! Rolurile tale:",
        "profile": "👤 Profilul tău\n\nNume: {name}\nUtilizator: {username}\nAdministrator: {admin}",
        "profile_roles_header": "Rolurile tale:",
        "profile_update_hint": "Folosește /register pentru a-ți schimba rolurile.",
        "not_set": "nesetat",
        "yes": "Da ✅",
        "no": "Nu",
        "user_not_found": "❌ Utilizatorul @{username} nu a fost găsit.",
        "role_not_found": "❌ Rolul „{role}” nu există.\n\nRoluri disponibile: {roles}",
        "role_already_assigned": "ℹ️ @{username} are deja rolul {role}.",
        "role_assigned": "✅ @{username} are acum rolul {role}.",
        # language
        "language_name": "🇷🇴 Română",
        "language_prompt": "Alege limba:",
        "language_changed": "✅ Limba a fost schimbată în română.",
        # event deletion
        "button_delete_event": "🗑 Șterge evenimentul",
        "button_delete_no": "↩️ Nu, păstrează",
        "event_delete_confirm": "Sigur vrei să ștergi evenimentul {title} din {date}?",
        "event_deleted": "🗑 Evenimentul {title} a fost șters.",
    },
    "en": {
        "button_back": "⬅️ Back",
        "button_cancel": "❌ Cancel",
        "cancelled": "Operation cancelled.",
        "done": "Done.",
        "error_generic": "Something went wrong. Please try again.",
        "miss_unknown_button": "Unknown button.",
        "miss_stale_button": "This button is no longer active.",
        "miss_use_buttons": "Please use the buttons above or /cancel.",
        "session_expired": "Session expired. Please start again with /{command}",
        "error_empty": "The message cannot be empty.",
        "error_too_long": "The text is too long.",
        "error_invalid_value": "Invalid value.",
        "error_date_format": "Invalid date. Use DD/MM/YYYY, e.g. 25/01/2025.",
        "error_time_format": "Invalid time. Use HH:MM, e.g. 10:30.",
        "error_song_format": "Invalid format. Use: Title | Key | Tempo",
        "error_save": "Could not save. Please try again.",
        "error_event_incomplete": "The event is incomplete. Use Back to fill it in.",
        "error_event_datetime": "The event date or time is invalid.",
        "error_event_save": "The event could not be saved. Please try again.",
        "error_link": "The link must start with http:// or https://",
        "error_key": "Invalid key (e.g. C, F#m, Bb).",
        "error_tempo": "Invalid tempo (a number between 20 and 300).",
        "error_chart_empty": "The chord chart cannot be empty.",
        "wizard_select_template": "📅 New event\n\nChoose the event type:",
        "wizard_select_date": "📅 {title}\n\nChoose the date:",
        "wizard_enter_date": "Type the date as DD/MM/YYYY:",
        "wizard_select_time": "📅 {date}\n\nChoose the time (⭐ = default):",
        "wizard_enter_time": "Type the time as HH:MM:",
        "wizard_select_location": "📍 Choose the location:",
        "wizard_enter_location": "Type the location:",
        "wizard_add_songs": (
            "🎵 Choose the songs ({count} selected).\n"
            "You can also type new songs, one per line: Title | Key | Tempo"
        ),
        "wizard_enter_songs": (
            "Type the songs, one per line:\nTitle | Key | Tempo\n\n"
            "Or type “done” / “skip”."
        ),
        "wizard_confirm": "Confirm the event?",
        "template_sunday": "⛪ Sunday service",
        "template_rehearsal": "🎸 Rehearsal",
        "weekdays_short": "Mon,Tue,Wed,Thu,Fri,Sat,Sun",
        "button_custom_date": "📝 Other date",
        "button_custom_time": "📝 Other time",
        "button_custom_location": "📝 Other location",
        "button_songs_done": "✅ Done",
        "button_songs_skip": "⏭ No songs",
        "button_songs_new": "➕ New songs",
        "button_confirm": "✅ Confirm",
        "button_edit": "✏️ Edit",
        "songs_added": "{count} songs added.",
        "song_selected": "Added: {title}",
        "song_removed": "Removed: {title}",
        "song_not_found": "The song no longer exists.",
        "event_created": "✅ Event created!",
        "event_summary": "📌 {title}\n📅 {date} {time}\n📍 {location}\n📝 {description}",
        "setlist_header": "🎵 Songs ({count}):",
        "setlist_empty": "🎵 No songs",
        "field_title": "Title",
        "field_artist": "Artist",
        "field_key": "Key",
        "field_tempo": "Tempo",
        "field_youtube": "YouTube",
        "field_chords": "Chords",
        "field_capo": "Capo",
        "field_time": "Time",
        "songs_list_header": "🎵 Songs ({count}), page {page}/{pages}:",
        "songs_search_header": "🔍 Results for “{query}” ({count}):",
        "songs_empty": "No songs found.",
        "button_prev": "◀️",
        "button_next": "▶️",
        "button_add_song": "➕ Add song",
        "button_edit_song": "✏️ Edit",
        "button_delete_song": "🗑 Delete",
        "button_delete_yes": "🗑 Yes, delete",
        "button_back_to_list": "⬅️ List",
        "song_edit_menu": "What do you want to change in “{title}”?",
        "song_edit_prompt": "Type the new {field} for “{title}”.\nType - to clear the value.",
        "song_updated": "✅ Song updated.",
        "song_add_prompt": "Type the new song:\nTitle | Key | Tempo",
        "song_saved": "✅ Song saved.",
        "song_delete_confirm": "“{title}” is used in {count} setlists. Delete anyway?",
        "song_deleted": "🗑 Song deleted.",
        "chords_pick_song": "🎸 Choose the song:",
        "chords_song_header": "🎸 {title}: {count} chord charts",
        "button_add_chart": "➕ Add chords",
        "chord_select_key": "🎸 {title}\n\nChoose the key:",
        "button_key_from_chart": "📄 From the chart header",
        "key_from_chart": "from header",
        "chord_enter_chart": (
            "🎸 {title} ({chord_key})\n\nSend the chords in ChordPro format.\n"
            "You can start with KEY:, CAPO:, TIME: lines"
        ),
        "chart_saved": "✅ Chords saved.",
        "chart_not_found": "The chord chart no longer exists.",
        "events_none": "No upcoming events.",
        "event_not_found": "The event no longer exists.",
        "attendance_counts": "✅ {yes}  ❌ {no}  ❓ {maybe}",
        "attendance_saved": "Response saved.",
        "button_yes": "✅ Going",
        "button_no": "❌ Not going",
        "button_maybe": "❓ Maybe",
        "admin_only": "Only admins can do this.",
        "help_header": "Commands:",
        "help_empty": "The command list is empty.",
        "usage": "Usage: {help}",
        "help_newevent": "/newevent - create an event",
        "help_songs": "/songs [query] - song library",
        "help_chords": "/chords - chord charts",
        "help_events": "/events - upcoming events",
        "help_cancel": "/cancel - cancel the current operation",
        "help_help": "/help - command list",
        "help_start": "/start - welcome message",
        "help_register": "/register - choose your team roles",
        "help_myroles": "/myroles - your profile and roles",
        "help_language": "/language - change the language",
        "help_assignrole": "/assignrole @username Role - assign a role",
        "nothing_to_cancel": "There is nothing to cancel.",
        "welcome": (
            "Welcome, {name}! 🙏\n\n"
            "Use /register to choose your roles and /help for the command list."
        ),
        "register_prompt": "Choose the roles you serve in (you can pick several):",
        "button_roles_done": "✅ Done",
        "role_selected": "Selected {role}",
        "role_removed": "Removed {role}",
        "roles_none": "No roles selected yet.",
        "registration_complete": "✅ Registration complete! Your roles:",
        "profile": "👤 Your profile\n\nName: {name}\nUsername: {username}\nAdmin: {admin}",
        "profile_roles_header": "Your roles:",
        "profile_update_hint": "Use /register to update your roles.",
        "not_set": "not set",
        "yes": "Yes ✅",
        "no": "No",
        "user_not_found": "❌ User @{username} was not found.",
        "role_not_found": "❌ Role '{role}' not found.\n\nAvailable roles: {roles}",
        "role_already_assigned": "ℹ️ @{username} already has the {role} role.",
        "role_assigned": "✅ @{username} now has the {role} role.",
        "language_name": "🇬🇧 English",
        "language_prompt": "Choose the language:",
        "language_changed": "✅ Language changed to English.",
        "button_delete_event": "🗑 Delete event",
        "button_delete_no": "↩️ No, keep it",
        "event_delete_confirm": "Delete the event {title} on {date}?",
        "event_deleted": "🗑 Event {title} was deleted.",
    },
}


class Localization:
    def __init__(
        self,
        strings: dict[str, dict[str, str]] = STRINGS,
        default_language: str = DEFAULT_LANGUAGE,
    ):
        self._strings = strings
        self.default_language = default_language

    @property
    def languages(self) -> list[str]:
        return list(self._strings)

    def language_of(self, language_code: str | None) -> str:
        language = (language_code or "").split("-")[0].lower()
        return language if language in self._strings else self.default_language

    def get(self, key: str, language: str | None = None, /, **kwargs) -> str:
        text = self._strings.get(self.language_of(language), {}).get(key)
        if text is None:
            text = self._strings[self.default_language].get(key)
        if text is None:
            logger.warning(f"Missing text {key}")
            return key
        return text.format(**kwargs) if kwargs else text
