"""Reference page returned whenever provider output cannot be turned into valid markup.

The tracking script reports the same query parameters the generation prompt
asks for: choice, decisionTime, allClicks (JSON) and maxScroll.
"""

REDIRECT_PLACEHOLDER = "YOUR_QUALTRICS_URL"

FALLBACK_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Consumer Choice Experiment</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            max-width: 1200px;
            margin: 0 auto;
            padding: 20px;
            background-color: #f8f9fa;
        }
        .container {
            background: white;
            padding: 40px;
            border-radius: 12px;
            box-shadow: 0 4px 20px rgba(0,0,0,0.1);
        }
        .choice-button {
            background: #007bff;
            color: white;
            padding: 15px 30px;
            border: none;
            border-radius: 8px;
            cursor: pointer;
            margin: 15px;
            font-size: 16px;
            font-weight: 600;
            transition: all 0.3s ease;
        }
        .choice-button:hover {
            background: #0056b3;
            transform: translateY(-2px);
        }
        .options-container {
            text-align: center;
            margin: 30px 0;
        }
        h1 {
            color: #333;
            text-align: center;
            margin-bottom: 30px;
        }
        p {
            color: #666;
            text-align: center;
            font-size: 18px;
            margin-bottom: 30px;
        }
    </style>
</head>
<body>
    <div class="container">
        <h1>Make Your Choice</h1>
        <p>Please select one of the options below to continue:</p>
        <div class="options-container">
            <button class="choice-button" onclick="recordChoice('option1')">Option 1</button>
            <button class="choice-button" onclick="recordChoice('option2')">Option 2</button>
            <button class="choice-button" onclick="recordChoice('option3')">Option 3</button>
        </div>
    </div>

    <script>
        // Tracking state
        let startTime = Date.now();
        let allClicks = [];
        let maxScroll = 0;
        let choice = '';

        // Every click: target tag, ms since load, pointer position
        document.addEventListener('click', function(e) {
            allClicks.push({
                element: e.target.tagName,
                time: Date.now() - startTime,
                x: e.clientX,
                y: e.clientY
            });
        });

        // Deepest vertical scroll reached, in percent
        window.addEventListener('scroll', function() {
            const scrollable = document.body.scrollHeight - window.innerHeight;
            if (scrollable <= 0) {
                maxScroll = 100;
                return;
            }
            const scrollPercent = Math.round((window.scrollY / scrollable) * 100);
            maxScroll = Math.max(maxScroll, scrollPercent);
        });

        function recordChoice(selectedChoice) {
            choice = selectedChoice;
            const decisionTime = Date.now() - startTime;

            const params = new URLSearchParams({
                choice: choice,
                decisionTime: decisionTime,
                allClicks: JSON.stringify(allClicks),
                maxScroll: maxScroll
            });

            window.location.href = '""" + REDIRECT_PLACEHOLDER + """?' + params.toString();
        }
    </script>
</body>
</html>"""


def fallback_document() -> str:
    return FALLBACK_HTML
