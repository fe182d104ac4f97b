# qqbotkit

The logic behind a set of group-chat bot features: timed reminders, group
management helpers and several small entertainment features. Your bot
framework receives the messages, calls these functions and sends back what
they return.

## Installation

```
pip install qqbotkit
```

To run the tests:

```
pip install "qqbotkit[test]"
pytest
```

## Modules

### Reminders

- `qqbotkit.timerspec` holds `Timer`. A timer packs month, day, weekday,
  hour and minute into one integer. A field set to "every" reads as -1.
  `Timer.info()` gives a normalised description and `Timer.timer_id()`
  derives an identifier from it.
  - `filled_timer(date_strs, bot_id, group_id, match_date_only)` builds a
    timer from the matched month, day or weekday, hour, minute, optional
    `用http...` image URL and alert text. Numbers may be digits or Chinese
    characters, and `每` means "every". Illegal values raise
    `TimerSpecError`.
  - `filled_cron_timer` builds a timer driven by a cron expression.
  - `chinese_num_to_int` and `chinese_char_to_int` do the number conversion.
- `qqbotkit.schedule`:
  - `next_wake_time(timer, now)` returns when a date-based timer should
    next wake.
  - `should_fire(timer, now)` says whether the timer matches that moment.
  - `first_weekday` finds the first given weekday of a month. Weekdays count
    from Sunday as 0.
- `qqbotkit.clock`:
  - `CronSchedule.parse` reads five-field cron expressions and `@daily`-style
    descriptors. It raises `CronSyntaxError` on bad input. `matches` and
    `next_after` evaluate a parsed schedule.
  - `TimerStore` keeps timers in an SQLite table.
  - `Clock(store, sender)` registers, cancels, lists and persists timers.
    Each timer runs in a background thread. When a timer goes off, the clock
    calls `sender(self_id, group_id, segments)` with the segments from
    `alert_message`: an @all, the alert, and an image when a URL is set.
  - `Clock.close()` stops all running timers.

### Group management

`qqbotkit.manager` provides:

- `parse_ban_minutes`: mute lengths, capped just below one month.
- `unescape_brackets`: turns `&#91;` and `&#93;` back into brackets.
- `render_welcome`: fills the `{at}`, `{nickname}`, `{avatar}`, `{uid}`,
  `{gid}` and `{groupname}` placeholders.
- `toggle_verification` and `toggle_gist_approval`: flip bits in the plugin
  data.
- `pick_lucky_member`: picks a random member from the ten most recent
  speakers.
- `ManagerStore`: welcome and farewell messages and verified members, in
  SQLite.
- `parse_join_answer`, `gist_url` and `check_new_user`: approve a join
  request when the applicant's gist, named by the md5 of the group number,
  holds a Unix timestamp within the last 600 seconds.

### Entertainment

- `qqbotkit.fortune` produces the daily fortune card:
  - `theme_index` and `THEMES` for the backgrounds;
  - `text_layout` places the text in vertical columns;
  - `load_omikujis` and `pick_background` read the data files;
  - `draw` renders the card to PNG with Pillow;
  - `cache_key` names the cached image.
- `qqbotkit.genshin` runs a ten-pull gacha:
  - `CardPack.from_zip` indexes a card-pack archive;
  - `roll` draws the cards and returns a `PullResult`;
  - `render` composes the result picture;
  - `Gacha.pull_ten` combines both and keeps the pull counter;
  - `is_five_star_mode` and `set_mode` handle the pool switch.
- `qqbotkit.moyu` builds the slacker's reminder. `fish_reminder(now, fetch)`
  assembles it from `weekend_message` and a `Holiday` for each public
  holiday. Records are fetched through your `fetch` callable and have the
  form `days_year_month_day` (see `holiday_record`).
- `qqbotkit.hyaku` covers the Hyakunin Isshu poems: `load_poems` reads the
  CSV, `pick_poem` chooses one, and `image_urls` gives the picture URLs.
- `qqbotkit.nsfw` turns classifier `Scores` into a verdict text with `judge`
  and `auto_judge`.
- `qqbotkit.github` searches repositories and formats the best match:
  `search`, `format_repo` and `preview_image_url`. A non-200 answer raises
  `FetchError`.
- `qqbotkit.nbnhhsh` asks the online service what a pinyin abbreviation
  stands for (`guess`, `extract_guesses`).
- `qqbotkit.juejuezi` calls the "绝绝子" phrase generator (`strip_keyword`,
  `build_payload`, `generate`).
- `qqbotkit.jandan` stores picture URLs keyed by CRC-64 in `PictureStore`.
  `update` walks the site's pages, newest first, until it reaches a picture
  already stored.
- `qqbotkit.nativesetu` provides `SetuLibrary`, which indexes the folders of
  a local image library as classes. Each picture is keyed by its
  `difference_hash`. The library picks random pictures and summarises counts.
- `qqbotkit.nativewife` provides `WifeGallery`, a per-group picture gallery
  with a daily draw that stays fixed for each person (`daily_index`).
- `qqbotkit.funny` serves jokes from SQLite (`JokeStore`), with the
  listener's name filled in (`fill_name`).
- `qqbotkit.omikuji` gives the fortune slip pictures (`image_urls`) and
  their explanations from SQLite (`KujiStore`).

## Example

```python
from datetime import datetime

from qqbotkit.schedule import next_wake_time
from qqbotkit.timerspec import filled_timer

timer = filled_timer(["", "十二", "每周", "八", "三十", "", "开会"], 0, 1234, False)
print(timer.info())                          # [1234]12月0日-1周8:30
print(next_wake_time(timer, datetime.now()))
```

## What this package does not do

- It does not connect to any chat service, parse incoming messages or match
  commands. Your bot framework does that and calls these functions.
- It does not download data files such as fonts, backgrounds, card packs,
  poem tables or joke databases. You supply the paths.
- `moyu` has no client for a holiday registry. You pass a `fetch` callable.
- The modules that talk to web services (`github`, `nbnhhsh`, `juejuezi`,
  `jandan`, and `manager.check_new_user` by default) use `requests`. The
  services they call may change or disappear.