"""
Curated preset playlists

`seed_presets()` uploads every catalog playlist whose name is not already
stored, so it can be run repeatedly:

    python presets.py
"""

import database
import playlists
from logger import get_logger, setup_logging

log = get_logger("presets")

_UNSPLASH = "https://images.unsplash.com/{photo}?w={size}&h={size}&fit=crop&auto=format&q=80"


def _cover(preset: dict, size: int) -> str:
    if preset.get("image"):
        return preset["image"]
    return _UNSPLASH.format(photo=preset["photo"], size=size)


# (title, artist, youtube id, duration in seconds); covers are either an
# Unsplash "photo" id or a static "image" path
CATALOG = [
    {
        "name": "Pop Hits",
        "description": "The biggest pop hits of all time",
        "genre": "Pop",
        "photo": "photo-1493225457124-a3eb161ffa5f",
        "songs": [
            ("Blinding Lights", "The Weeknd", "4NRXx6U8ABQ", 200),
            ("Shape of You", "Ed Sheeran", "JGwWNGJdvx8", 233),
            ("Uptown Funk", "Mark Ronson ft. Bruno Mars", "OPf0YbXqDm0", 270),
            ("Levitating", "Dua Lipa (feat. DaBaby)", "TUVcZfQe-Kw", 203),
            ("As It Was", "Harry Styles", "H5v3kku4y6Q", 167),
            ("Bad Guy", "Billie Eilish", "DyDfgMOUjCI", 194),
            ("Don't Start Now", "Dua Lipa", "oygrmJFKYZY", 183),
            ("Señorita", "Shawn Mendes & Camila Cabello", "Pkh8UtuejGw", 191),
            ("Stay", "The Kid LAROI & Justin Bieber", "fHI8X4OXluQ", 141),
            ("Watermelon Sugar", "Harry Styles", "E07s5ZYygMg", 174),
            ("Sorry", "Justin Bieber", "fRh_vgS2dFE", 200),
            ("Someone You Loved", "Lewis Capaldi", "zABLecsR5UE", 182),
            ("Havana", "Camila Cabello ft. Young Thug", "HCjNJDNzw8Y", 217),
            ("Shallow", "Lady Gaga & Bradley Cooper", "bo_efYhYU2A", 215),
            ("Old Town Road", "Lil Nas X ft. Billy Ray Cyrus", "r7qovpFAGrQ", 157),
        ],
    },
    {
        "name": "Rap Essentials",
        "description": "Essential hip hop tracks that define the genre",
        "genre": "Hip Hop",
        "photo": "photo-1577648735394-9c41449a1f6f",
        "songs": [
            ("Lose Yourself", "Eminem", "_Yhyp-_hX2s", 326),
            ("SICKO MODE", "Travis Scott ft. Drake", "6ONRf7h3Mdk", 312),
            ("God's Plan", "Drake", "FrsOnNxIrg8", 198),
            ("HUMBLE.", "Kendrick Lamar", "tvTRZJ-4EyI", 177),
            ("In Da Club", "50 Cent", "5qm8PH4xAss", 213),
            ("Mask Off", "Future", "xvZqHgFz51I", 204),
            ("Mo Bamba", "Sheck Wes", "VWoIpDVkOH0", 183),
            ("No Role Modelz", "J. Cole", "8HBcV0MtAQg", 293),
            ("Stronger", "Kanye West", "PsO6ZnUZI0g", 311),
            ("Goosebumps", "Travis Scott ft. Kendrick Lamar", "9mahKFNuHqM", 244),
            ("Money Trees", "Kendrick Lamar ft. Jay Rock", "hwR_1EP18eo", 386),
            ("Hotline Bling", "Drake", "uxpDa-c-4Mc", 267),
            ("Alright", "Kendrick Lamar", "Z-48u_uWMHY", 219),
            ("Congratulations", "Post Malone ft. Quavo", "FFhGqNa-Waw", 220),
            ("20 Min", "Lil Uzi Vert", "GosY_33lAkA", 220),
        ],
    },
    {
        "name": "90s Essentials",
        "description": "The most essential hits from the 1990s",
        "genre": "90s",
        "photo": "photo-1611532736597-de2d4265fba3",
        "songs": [
            ("Wannabe", "Spice Girls", "tTZDHlnTgR0", 173),
            ("No Scrubs", "TLC", "B4k0MhnP30s", 214),
            ("Baby One More Time", "Britney Spears", "fEfvTTJNeAY", 211),
            ("I Want It That Way", "Backstreet Boys", "qjlVAsvQLM8", 211),
            ("My Heart Will Go On", "Celine Dion", "mNsm2P0l_7Y", 279),
            ("Genie in a Bottle", "Christina Aguilera", "k6H5v9iMQhQ", 217),
            ("I Will Always Love You", "Whitney Houston", "T9Ybsvw_0p4", 264),
            ("Macarena", "Los del Río", "zWaymcVmJ-A", 224),
            ("Everybody (Backstreet's Back)", "Backstreet Boys", "4iWm-mUToDg", 228),
            ("Say My Name", "Destiny's Child", "JguQIUGoE3E", 267),
            ("Vogue", "Madonna", "ydFYm-oomec", 318),
            ("Baby I Love Your Way", "Big Mountain", "Kbsi0tsLJUg", 263),
            ("Believe", "Cher", "n7wvAEDOxAs", 240),
            ("Tearin' Up My Heart", "*NSYNC", "N_Lbhv0xUY4", 207),
            ("If You Had My Love", "Jennifer Lopez", "tT5g7I-Itc8", 266),
        ],
    },
    {
        "name": "2000s Essentials",
        "description": "The defining hits of the new millennium",
        "genre": "2000s",
        "image": "/images/playlists/2000s.PNG",
        "songs": [
            ("Hey Ya!", "OutKast", "PWgvGjAhvIw", 235),
            ("Crazy in Love", "Beyoncé ft. Jay-Z", "ViwtNLUqkMY", 236),
            ("Hot in Herre", "Nelly", "GeZZr_p6vB8", 228),
            ("Since U Been Gone", "Kelly Clarkson", "RCcHO3lQ6xc", 207),
            ("Yeah!", "Usher ft. Lil Jon, Ludacris", "GxBSyx85Kp8", 250),
            ("Poker Face", "Lady Gaga", "bESGLojNYSo", 237),
            ("Drop It Like It's Hot", "Snoop Dogg ft. Pharrell", "K5F-aGDIYaM", 267),
            ("Beautiful Day", "U2", "co6WMzDOh1o", 248),
            ("Viva La Vida", "Coldplay", "dvgZkm1xWPE", 242),
            ("Beautiful Girls", "Sean Kingston", "fNVE8-4TIz0", 189),
            ("Cruise", "Florida Georgia Line", "7aG4fNURQ1Q", 200),
            ("Toxic", "Britney Spears", "LOZuxwVk7TU", 198),
            ("Hot N Cold", "Katy Perry", "kTHNpusq654", 220),
            ("I Gotta Feeling", "The Black Eyed Peas", "uSD4vsh1zDA", 289),
            ("Hollaback Girl", "Gwen Stefani", "Kgjkth6BRRY", 199),
        ],
    },
    {
        "name": "Disney Essentials",
        "description": "The most beloved Disney songs of all time",
        "genre": "Disney",
        "image": "/images/playlists/disney.PNG",
        "songs": [
            ("Let It Go", "Idina Menzel (Frozen)", "FnpJBkAMk44", 231),
            ("Under the Sea", "Samuel E. Wright (The Little Mermaid)", "ChNJ_FMtSnk", 195),
            ("Circle of Life", "Carmen Twillie & Lebo M. (The Lion King)", "CF-c1K3WWg4", 238),
            ("Hakuna Matata", "Nathan Lane & Ernie Sabella (The Lion King)", "yUioIn8rPPM", 255),
            ("Part of Your World", "Jodi Benson (The Little Mermaid)", "ZYcV5oXlccc", 211),
            ("You've Got a Friend in Me", "Randy Newman (Toy Story)", "0hG-2tQtdlE", 125),
            ("A Whole New World", "Lea Salonga & Brad Kane (Aladdin)", "xYjFxFFdyyk", 160),
            ("Beauty and the Beast", "Angela Lansbury (Beauty and the Beast)", "90b2R6yzIzE", 162),
            ("If I Didn't Have You", "Billy Crystal & John Goodman (Monsters, Inc.)", "41ill-Bq5UI", 218),
            ("I'll Make a Man Out of You", "Donny Osmond (Mulan)", "elBKil5zE2g", 201),
            ("I've Got a Dream", "Mandy Moore & Zachary Levi (Tangled)", "oU8mgUn204A", 189),
            ("When You Wish Upon a Star", "Cliff Edwards (Pinocchio)", "wEWowjC2dSk", 193),
            ("Bare Necessities", "Phil Harris & Bruce Reitherman (The Jungle Book)", "6BH-Rxd-NBo", 174),
            ("How Far I'll Go", "Auli'i Cravalho (Moana)", "cPAbx5kgCJo", 155),
            ("I See the Light", "Mandy Moore & Zachary Levi (Tangled)", "chDDxukoT1M", 220),
        ],
    },
    {
        "name": "Country Essentials",
        "description": "The biggest country hits that define the genre",
        "genre": "Country",
        "image": "/images/playlists/country.png",
        "songs": [
            ("Last Night", "Morgan Wallen", "TBkpoTbJAsI", 163),
            ("Old Town Road", "Lil Nas X ft. Billy Ray Cyrus", "r7qovpFAGrQ", 157),
            ("Body Like a Back Road", "Sam Hunt", "Mdh2p03cRfw", 165),
            ("Cruise", "Florida Georgia Line", "7aG4fNURQ1Q", 200),
            ("10,000 Hours", "Dan + Shay & Justin Bieber", "3GOYaIIeT28", 168),
            ("I Hope", "Gabby Barrett", "mlPfN4heqBo", 213),
            ("Meant to Be", "Bebe Rexha & Florida Georgia Line", "UZR4-9CCc-k", 164),
            ("You Proof", "Morgan Wallen", "oSBh6a0QJg8", 157),
            ("Fancy Like", "Walker Hayes", "SVFA5iBqMes", 163),
            ("Wasted on You", "Morgan Wallen", "KE35_SlTdn4", 178),
            ("Forever After All", "Luke Combs", "fmbLCMGtEQc", 235),
            ("I Don't Want This Night to End", "Luke Bryan", "9ELldmxM_58", 220),
            ("Dirt Road Anthem", "Jason Aldean", "dPkzzAeUQ7s", 231),
            ("Tennessee Whiskey", "Chris Stapleton", "4zAThXFOy2c", 293),
            ("Need You Now", "Lady A", "fbq7ZM0du-c", 273),
        ],
    },
]


def seed_presets() -> list[str]:
    """Upload missing catalog playlists; returns the ids created."""
    existing = {p["name"] for p in playlists.list_preset_playlists()}
    created = []
    for preset in CATALOG:
        if preset["name"] in existing:
            log.info("Preset %s already present, skipping", preset["name"])
            continue
        playlist_id = playlists.create_preset_playlist(
            name=preset["name"],
            genre=preset["genre"],
            description=preset["description"],
            cover_image_url=_cover(preset, 300),
        )
        album_art = _cover(preset, 200)
        for title, artist, video_id, duration in preset["songs"]:
            playlists.add_song_to_preset(
                playlist_id,
                title=title,
                artist=artist,
                audio_url=f"https://www.youtube.com/watch?v={video_id}",
                duration=duration,
                album_art=album_art,
            )
        log.info("Uploaded preset %s (%d songs)", preset["name"], len(preset["songs"]))
        created.append(playlist_id)
    return created


if __name__ == "__main__":
    setup_logging()
    if database.db is None:
        raise SystemExit("Set DATABASE_URL and DATABASE_NAME first")
    ids = seed_presets()
    log.info("All preset playlists uploaded (%d new)", len(ids))
